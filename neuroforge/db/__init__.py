# SQLAlchemy persistence
from .database import create_db_engine, create_session_factory, init_db, session_scope
from .models import Base, ReviewStateRow, UnitCompletionRow
from .repositories import SqlCompletionStore, SqlReviewStore

__all__ = [
    "Base",
    "ReviewStateRow",
    "UnitCompletionRow",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
    "SqlReviewStore",
    "SqlCompletionStore",
]
