# okto_portal/db_types.py

from datetime import datetime, timezone

from sqlalchemy import JSON as SA_JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import Enum as SA_Enum, TypeDecorator

# JSON handling: PostgreSQL JSONB if available, fallback to generic JSON
JSONType = SA_JSON().with_variant(JSONB, "postgresql")

# UUID handling: native UUID on PostgreSQL, CHAR(32) elsewhere
UUIDType = Uuid(as_uuid=True)

# Enum handling: SQLAlchemy Enum type (works for all backends)
EnumType = SA_Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalizes a datetime to UTC. Naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Stores timestamps as UTC and always hands back timezone-aware UTC values."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = to_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return to_utc(value)


def isoformat(value):
    return value.isoformat() if value else None


__all__ = ["JSONType", "UUIDType", "EnumType", "UTCDateTime", "utcnow", "to_utc", "isoformat"]
