"""
Storage protocol shared by all persistence backends

The election store only needs a durable key-value capability: two fixed
logical keys ("candidates", "voters") holding JSON-serialisable lists.
"""

from typing import Any, Dict, Protocol, runtime_checkable

CANDIDATES_KEY = "candidates"
VOTERS_KEY = "voters"


@runtime_checkable
class Storage(Protocol):
    """Key-value persistence capability"""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for key, or default if absent"""
        ...

    def set(self, key: str, value: Any) -> None:
        """Durably store value under key"""
        ...

    def set_many(self, values: Dict[str, Any]) -> None:
        """Store several keys atomically: all land or none do"""
        ...

    def close(self) -> None:
        ...
