# apigen/types.py
#
# UUID identity-key column. Storage is SQLAlchemy's portable Uuid (native UUID
# on PostgreSQL, 32-char hex elsewhere); this layer normalizes what callers bind.
import uuid
from typing import Any, Optional

from sqlalchemy import Uuid
from sqlalchemy.types import TypeDecorator


def coerce_uuid(value: Any) -> Optional[uuid.UUID]:
    """
    UUID from a UUID, any string form uuid.UUID accepts (hyphenated, bare hex,
    braced, urn:uuid:) or 16 raw bytes. None passes through.
    """
    if value is None or isinstance(value, uuid.UUID):
        return value
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 16:
            raise ValueError(f"expected 16 bytes for a UUID, got {len(value)}")
        return uuid.UUID(bytes=bytes(value))
    if isinstance(value, str):
        return uuid.UUID(value.strip())
    raise TypeError(f"cannot use {type(value).__name__} as a UUID key")


class UUIDKey(TypeDecorator):
    impl = Uuid(as_uuid=True)
    cache_ok = True

    @property
    def python_type(self):
        # route binding types the {id} path parameter from this
        return uuid.UUID

    def process_bind_param(self, value, dialect):
        return coerce_uuid(value)

    def process_literal_param(self, value, dialect):
        return coerce_uuid(value)

    def process_result_value(self, value, dialect):
        return coerce_uuid(value)
