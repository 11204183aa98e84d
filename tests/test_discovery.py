import logging
import uuid

import pytest
from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from apigen.declarative import api_entity, is_api_entity, known_declarations
from apigen.discovery import build_entity_spec, discover_entities
from apigen.errors import DiscoveryError, DuplicateEntityError, MissingIdentityKeyError
from entities.book import Book
from sample_entities import DECLARATIONS, Counter, Draft, Membership, Tag


def _by_name(specs):
    return {s.name: s for s in specs}


def test_only_marked_declarations_are_discovered():
    specs = _by_name(discover_entities(DECLARATIONS))
    assert set(specs) == {"book", "tag", "counter", "membership"}
    assert "draft" not in specs
    assert not is_api_entity(Draft)


def test_default_declarations_come_from_base_registry():
    names = {c.__name__ for c in known_declarations()}
    assert {"Book", "Tag", "Counter", "Membership", "Draft"} <= names
    assert "draft" not in _by_name(discover_entities())


def test_identity_key_types():
    specs = _by_name(discover_entities(DECLARATIONS))
    assert specs["book"].key.name == "id"
    assert specs["book"].key_type is uuid.UUID
    assert specs["tag"].key_type is int
    assert specs["counter"].key_type is int


def test_searchable_fields_are_string_columns_only(caplog):
    with caplog.at_level(logging.WARNING):
        tag = build_entity_spec(Tag)
    assert [f.name for f in tag.searchable_fields] == ["label"]
    assert "weight" in caplog.text

    book = build_entity_spec(Book)
    assert [f.name for f in book.searchable_fields] == ["title", "author"]

    assert build_entity_spec(Counter).searchable_fields == []


def test_composite_key_is_degraded_and_reported(caplog):
    with caplog.at_level(logging.WARNING):
        spec = build_entity_spec(Membership)
    assert spec.key is None
    assert not spec.has_key
    assert "Membership" in caplog.text


def test_composite_key_is_fatal_in_strict_mode():
    with pytest.raises(MissingIdentityKeyError):
        discover_entities(DECLARATIONS, strict_keys=True)
    # strict mode is fine when every entity has a key
    assert len(discover_entities([Book, Tag], strict_keys=True)) == 2


def test_duplicate_lowercase_names_are_rejected():
    class OtherBase(DeclarativeBase):
        pass

    @api_entity
    class Widget(OtherBase):
        __tablename__ = "widget_a"
        id: Mapped[int] = mapped_column(primary_key=True)

    @api_entity
    class WIDGET(OtherBase):
        __tablename__ = "widget_b"
        id: Mapped[int] = mapped_column(primary_key=True)
        name: Mapped[str] = mapped_column(String(10))

    with pytest.raises(DuplicateEntityError) as exc:
        discover_entities([Widget, WIDGET])
    assert "/widget" in str(exc.value)
    assert isinstance(exc.value, DiscoveryError)


def test_same_declaration_listed_twice_is_not_a_conflict():
    specs = discover_entities([Book, Book])
    assert [s.name for s in specs] == ["book"]


def test_marker_is_not_inherited():
    class OtherBase(DeclarativeBase):
        pass

    @api_entity
    class Parent(OtherBase):
        __tablename__ = "parent"
        id: Mapped[int] = mapped_column(primary_key=True)
        kind: Mapped[str] = mapped_column(String(10))
        __mapper_args__ = {"polymorphic_on": "kind", "polymorphic_identity": "parent"}

    class Child(Parent):
        __mapper_args__ = {"polymorphic_identity": "child"}

    assert is_api_entity(Parent)
    assert not is_api_entity(Child)
