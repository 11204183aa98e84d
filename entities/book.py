# entities/book.py
from __future__ import annotations
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apigen.declarative import Base, api_entity, searchable
from apigen.types import UUIDKey


@api_entity
class Book(Base):
    __tablename__ = "book"

    id: Mapped[uuid.UUID] = mapped_column(UUIDKey(), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = searchable(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author: Mapped[str] = searchable(String(255))
    publisher: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    published_date: Mapped[Optional[datetime]] = mapped_column(nullable=True)
