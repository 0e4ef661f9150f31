"""
Pydantic request models for API validation
"""

from typing import List, Optional
from pydantic import BaseModel, field_validator, model_validator

MAX_NAME_LENGTH = 200
MAX_EMAIL_LENGTH = 320


class AdminLoginRequest(BaseModel):
    password: str


class CandidateCreateRequest(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Candidate name too long (max {MAX_NAME_LENGTH} characters)")
        # Emptiness is checked by the store so the error shape matches other callers
        return v


class VotersAddRequest(BaseModel):
    """Either a list of emails or the raw textarea block, one per line"""

    emails: Optional[List[str]] = None
    text: Optional[str] = None

    @model_validator(mode="after")
    def require_one_source(self) -> "VotersAddRequest":
        if self.emails is None and self.text is None:
            raise ValueError("Provide either 'emails' or 'text'")
        return self

    def entries(self) -> List[str]:
        entries = list(self.emails or [])
        if self.text:
            entries.extend(self.text.splitlines())
        return entries


class VoterLoginRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Email cannot be empty")
        if len(v) > MAX_EMAIL_LENGTH:
            raise ValueError("Email too long")
        return v


class ToggleRequest(BaseModel):
    candidate_id: str
