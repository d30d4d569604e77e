from clubpay.db.base import Base, ClubScopedMixin, EmployeeScopedMixin, IDMixin, TimestampMixin, utcnow
from clubpay.db.session import SessionLocal, engine, get_db, session_scope

__all__ = [
    "Base",
    "ClubScopedMixin",
    "EmployeeScopedMixin",
    "IDMixin",
    "TimestampMixin",
    "utcnow",
    "engine",
    "SessionLocal",
    "get_db",
    "session_scope",
]
