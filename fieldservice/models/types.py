"""Column types shared by the models.

UUID and JSON columns map to native ``UUID``/``JSONB`` on PostgreSQL and to
portable fallbacks elsewhere (SQLite in tests).
"""
from sqlalchemy import JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB

GUID = Uuid(as_uuid=True)
JSONType = JSON().with_variant(JSONB(), 'postgresql')


def iso(value):
    """ISO-8601 string for a date/datetime column, or None"""
    return value.isoformat() if value else None


def as_float(value):
    """Float for a Numeric column, or None"""
    return float(value) if value is not None else None
