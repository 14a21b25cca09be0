from gtms.db.base import Base
from gtms.db.session import get_db, engine, SessionLocal
from gtms.db.tables import ALL_TABLE_NAMES, NOTIFICATION_TABLE_NAMES, RECORD_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "NOTIFICATION_TABLE_NAMES", "RECORD_TABLE_NAMES"]
