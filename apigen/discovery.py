# apigen/discovery.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import String
from sqlalchemy import inspect as sa_inspect

from apigen.declarative import SEARCHABLE, is_api_entity, known_declarations
from apigen.errors import DuplicateEntityError, MissingIdentityKeyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldDescriptor:
    name: str            # mapped attribute name (also the JSON field name)
    column: Any          # sqlalchemy Column
    python_type: Any
    searchable: bool = False

    @property
    def is_string(self) -> bool:
        # Text, Unicode, VARCHAR... all derive from String
        return isinstance(self.column.type, String)

    @property
    def nullable(self) -> bool:
        return bool(self.column.nullable)

    @property
    def has_default(self) -> bool:
        c = self.column
        if c.default is not None or c.server_default is not None:
            return True
        # integer single-column PKs autoincrement on every backend we target
        if not c.primary_key or len(c.table.primary_key.columns) != 1:
            return False
        return c.autoincrement in (True, "auto") and self.python_type is int


@dataclass
class EntitySpec:
    name: str
    model: type
    fields: List[FieldDescriptor]
    key: Optional[FieldDescriptor] = None
    searchable_fields: List[FieldDescriptor] = field(default_factory=list)

    @property
    def has_key(self) -> bool:
        return self.key is not None

    @property
    def key_type(self) -> Any:
        return self.key.python_type if self.key else None

    @property
    def key_attr(self):
        """InstrumentedAttribute of the identity key (usable in select/order_by)."""
        return getattr(self.model, self.key.name)

    def key_of(self, obj: Any) -> Any:
        return getattr(obj, self.key.name)

    def searchable_attrs(self) -> List[Any]:
        return [getattr(self.model, f.name) for f in self.searchable_fields]


def _python_type(col) -> Any:
    try:
        return col.type.python_type
    except NotImplementedError:
        return Any


def _field_descriptors(model: type) -> List[FieldDescriptor]:
    mapper = sa_inspect(model)
    out: List[FieldDescriptor] = []
    for attr in mapper.column_attrs:
        col = attr.columns[0]
        out.append(FieldDescriptor(
            name=attr.key,
            column=col,
            python_type=_python_type(col),
            searchable=bool(col.info.get(SEARCHABLE, False)),
        ))
    return out


def build_entity_spec(model: type, strict_keys: bool = False) -> EntitySpec:
    name = model.__name__.lower()
    fields = _field_descriptors(model)

    pk_cols = list(sa_inspect(model).primary_key)
    key: Optional[FieldDescriptor] = None
    if len(pk_cols) == 1:
        key = next(f for f in fields if f.column is pk_cols[0])
    else:
        msg = (
            f"{model.__name__} has no single-column identity key "
            f"(primary key columns: {[c.name for c in pk_cols]})"
        )
        if strict_keys:
            raise MissingIdentityKeyError(msg)
        logger.warning("%s; only create and get-all will be registered for /%s", msg, name)

    searchable_fields: List[FieldDescriptor] = []
    for f in fields:
        if not f.searchable:
            continue
        if f.is_string:
            searchable_fields.append(f)
        else:
            logger.warning("Ignoring searchable marker on %s.%s (not a string column)", model.__name__, f.name)

    return EntitySpec(name=name, model=model, fields=fields, key=key, searchable_fields=searchable_fields)


def discover_entities(declarations: Optional[Iterable[type]] = None, strict_keys: bool = False) -> List[EntitySpec]:
    """
    Filter the API-exposed declarations and describe each one.
    declarations defaults to every class mapped on apigen.declarative.Base.
    Raises DuplicateEntityError if two entities lower-case to the same route name.
    """
    if declarations is None:
        declarations = known_declarations()

    specs: Dict[str, EntitySpec] = {}
    for decl in declarations:
        if not is_api_entity(decl):
            continue
        existing = specs.get(decl.__name__.lower())
        if existing is not None and existing.model is decl:
            continue
        spec = build_entity_spec(decl, strict_keys=strict_keys)
        if existing is not None:
            raise DuplicateEntityError(
                f"{decl.__module__}.{decl.__name__} and "
                f"{existing.model.__module__}.{existing.model.__name__} "
                f"both map to /{spec.name}"
            )
        specs[spec.name] = spec

    logger.info(
        "Discovered %d API entities: %s",
        len(specs),
        ", ".join(f"{s.name}(key={s.key.name if s.key else '-'})" for s in specs.values()),
    )
    return list(specs.values())
