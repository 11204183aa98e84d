# apigen/schemas.py
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, create_model

from apigen.discovery import EntitySpec, FieldDescriptor

T = TypeVar("T")


class PagedResult(BaseModel, Generic[T]):
    """Envelope of the /query route."""
    model_config = ConfigDict(populate_by_name=True)

    data: List[T] = Field(default_factory=list)
    total_count: int = Field(0, alias="totalCount")
    page: int = 1
    page_size: int = Field(0, alias="pageSize")

    @computed_field(alias="totalPages")  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        if self.page_size == 0:
            return 0
        return math.ceil(self.total_count / self.page_size)


@dataclass(frozen=True)
class EntityModels:
    create: Type[BaseModel]
    update: Type[BaseModel]
    ref: Type[BaseModel]
    read: Type[BaseModel]
    page: Type[BaseModel]


def _optional_on_create(f: FieldDescriptor) -> bool:
    return f.nullable or f.has_default


def build_entity_models(spec: EntitySpec) -> EntityModels:
    """
    Returns request/response models for one entity.

    - Create: every column; optional iff nullable or defaulted (incl. generated keys).
    - Update: full replace; key required, other columns required iff NOT NULL.
    - Ref:    key required, everything else optional (delete-by-body).
    - Read:   every column; nullable columns are Optional[...] with default None.
    - Page:   PagedResult[Read].
    """
    create_fields: Dict[str, Tuple[Any, Any]] = {}
    update_fields: Dict[str, Tuple[Any, Any]] = {}
    ref_fields: Dict[str, Tuple[Any, Any]] = {}
    read_fields: Dict[str, Tuple[Any, Any]] = {}

    for f in spec.fields:
        pytype = f.python_type
        is_key = spec.key is not None and f.name == spec.key.name

        if _optional_on_create(f):
            create_fields[f.name] = (Optional[pytype], None)
        else:
            create_fields[f.name] = (pytype, ...)

        if is_key or not f.nullable:
            update_fields[f.name] = (pytype, ...)
        else:
            update_fields[f.name] = (Optional[pytype], None)

        ref_fields[f.name] = (pytype, ...) if is_key else (Optional[pytype], None)

        read_fields[f.name] = (Optional[pytype], None) if f.nullable else (pytype, ...)

    base = spec.model.__name__
    CreateModel = create_model(f"{base}Create", __base__=BaseModel, **create_fields)
    UpdateModel = create_model(f"{base}Update", __base__=BaseModel, **update_fields)
    RefModel = create_model(f"{base}Ref", __base__=BaseModel, **ref_fields)
    ReadModel = create_model(
        f"{base}Read",
        __config__=ConfigDict(from_attributes=True),
        **read_fields,
    )
    PageModel = PagedResult[ReadModel]  # type: ignore[valid-type]

    for m in (CreateModel, UpdateModel, RefModel, ReadModel, PageModel):
        m.model_rebuild()

    return EntityModels(create=CreateModel, update=UpdateModel, ref=RefModel, read=ReadModel, page=PageModel)


def serialize_row(spec: EntitySpec, obj: Any) -> Dict[str, Any]:
    return {f.name: getattr(obj, f.name) for f in spec.fields}
