"""
councilvote - Staff council election service

This package provides:
- Candidate and voter-roll management
- A per-session voting workflow with a capped ballot
- Stable ranking of results with an elected subset
- Optional LLM-written results announcement
- SQLite-based data persistence
- FastAPI web server
"""

__version__ = "1.0.0"
