# apigen/declarative.py
from __future__ import annotations
from typing import Any, List

from sqlalchemy.orm import DeclarativeBase, mapped_column

API_ENTITY_ATTR = "__api_entity__"
SEARCHABLE = "searchable"


class Base(DeclarativeBase):
    pass


def api_entity(cls):
    """Mark a declaration as API-exposed (gets the generated CRUD + query routes)."""
    setattr(cls, API_ENTITY_ATTR, True)
    return cls


def is_api_entity(cls) -> bool:
    # only the class itself counts; subclasses of an exposed entity must opt in
    return bool(cls.__dict__.get(API_ENTITY_ATTR, False))


def searchable(*args: Any, **kwargs: Any):
    """mapped_column() that takes part in free-text search on the query route."""
    info = dict(kwargs.pop("info", None) or {})
    info[SEARCHABLE] = True
    return mapped_column(*args, info=info, **kwargs)


def known_declarations() -> List[type]:
    # registry.mappers is a frozenset
    return sorted((m.class_ for m in Base.registry.mappers), key=lambda c: c.__name__)
