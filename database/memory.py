"""
In-memory key-value storage

Same contract as ElectionDatabase without touching disk. Used by tests and by
COUNCILVOTE_STORAGE=memory for throwaway demo runs.
"""

import copy
from typing import Any, Dict


class MemoryStorage:
    """Dict-backed storage; values are deep-copied in and out"""

    def __init__(self, initial: Dict[str, Any] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.writes = 0

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, values: Dict[str, Any]) -> None:
        staged = {key: copy.deepcopy(value) for key, value in values.items()}
        self._data.update(staged)
        self.writes += 1

    def close(self) -> None:
        pass
