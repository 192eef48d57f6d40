"""SQLite persistence for candidates and interview sessions."""
from .candidates import delete_candidate, get_candidate, list_candidates, upsert_candidate
from .migrate import migrate
from .sessions import delete_session, load_all_sessions, load_session, persist_snapshot, save_session

__all__ = [
    "delete_candidate",
    "delete_session",
    "get_candidate",
    "list_candidates",
    "load_all_sessions",
    "load_session",
    "migrate",
    "persist_snapshot",
    "save_session",
    "upsert_candidate",
]
