"""
Custom Exception Hierarchy - Domain-specific error types

Provides clear, typed exceptions for the failure modes of the election service.
All custom exceptions inherit from CouncilVoteError for easy catching.

Design Philosophy:
- Exceptions are data: Include context for debugging
- Fail explicitly: Better to raise specific exception than generic
- Catch specifically: Handler can distinguish error types
- Log contextually: Exception attributes enable rich logging
"""

from typing import Optional, Dict, Any


class CouncilVoteError(Exception):
    """Base exception for all councilvote errors

    All custom exceptions inherit from this, enabling:
    - Catch all councilvote errors with single except clause
    - Distinguish our errors from library errors
    - Add common attributes (context, original_error)
    - Check if error is retryable via is_retryable property
    """

    # Default: errors are not retryable (permanent failure)
    _retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Check if this error represents a transient failure that may succeed later.

        Returns:
            True for transient failures (network, timeouts)
            False for permanent failures (validation, unknown voter)
        """
        return self._retryable

    def __str__(self):
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


# ========== Database Errors ==========


class DatabaseError(CouncilVoteError):
    """Persistence failures

    Examples:
    - Query errors
    - Transaction rollbacks
    - Unserialisable values
    """
    pass


class DatabaseConnectionError(DatabaseError):
    """Failed to establish or maintain database connection"""
    _retryable = True


# ========== Validation Errors ==========


class ValidationError(CouncilVoteError):
    """Data validation failures

    Examples:
    - Empty candidate name
    - Empty ballot on submission
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        self.field = field
        self.value = value

        context = {}
        if field:
            context['field'] = field
        if value is not None:
            context['value'] = str(value)

        super().__init__(message, context)


class EmptySelectionError(ValidationError):
    """Ballot submitted with no candidates selected"""

    def __init__(self, message: str = "Select at least one candidate before submitting"):
        super().__init__(message, field="selection", value=0)


# ========== Voting Errors ==========


class VotingError(CouncilVoteError):
    """Voting workflow failures"""
    pass


class NotRegisteredError(VotingError):
    """Login email is not in the voter roll"""

    def __init__(self, email: str):
        self.email = email
        super().__init__("This email is not registered to vote", {'email': email})


class AlreadyVotedError(VotingError):
    """Voter already has an accepted ballot in this election cycle"""

    def __init__(self, email: str):
        self.email = email
        super().__init__("This voter has already voted", {'email': email})


class InvalidTransitionError(VotingError):
    """Action not allowed in the current session state

    Examples:
    - Toggling a candidate before logging in
    - Submitting twice from the same session
    """

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(
            f"Cannot {action} while session is {state}",
            {'action': action, 'state': state}
        )


class SessionNotFoundError(VotingError):
    """Unknown or discarded session token"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Voting session not found", {'session_id': session_id[:8]})


class AdminAuthError(CouncilVoteError):
    """Admin shared secret missing or wrong"""

    def __init__(self, message: str = "Incorrect admin password", missing: bool = False):
        self.missing = missing
        super().__init__(message)


# ========== Processing Errors ==========


class ProcessingError(CouncilVoteError):
    """Results summary processing failures"""
    pass


class LLMError(ProcessingError):
    """LLM API failures

    Examples:
    - API rate limit
    - Empty response
    - Model quota exceeded
    """

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        prompt_type: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.model = model
        self.prompt_type = prompt_type
        self.original_error = original_error

        context = {}
        if model:
            context['model'] = model
        if prompt_type:
            context['prompt_type'] = prompt_type
        if original_error:
            context['original_error'] = str(original_error)

        super().__init__(message, context)


class CollaboratorUnavailableError(ProcessingError):
    """Summary generator failed, timed out, or is not configured

    Recovered locally: the tally stays available, only the narrative
    falls back to a fixed message.
    """

    _retryable = True

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.reason = reason
        self.original_error = original_error

        context = {}
        if reason:
            context['reason'] = reason
        if original_error:
            context['original_error'] = str(original_error)

        super().__init__(message, context)


# ========== Configuration Errors ==========


class ConfigurationError(CouncilVoteError):
    """Configuration or environment errors

    Examples:
    - Missing API key
    - Unknown storage backend
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        context = {}
        if config_key:
            context['config_key'] = config_key
        super().__init__(message, context)
