# core/ports.py
from __future__ import annotations
from typing import Any, List, Optional, Protocol

from sqlalchemy import Select


class StorageCollection(Protocol):
    """Queryable set of persisted records for one entity type."""
    async def add(self, entity: Any) -> Any: ...
    async def find_by_id(self, key: Any) -> Optional[Any]: ...
    async def exists(self, key: Any) -> bool: ...
    async def update(self, entity: Any) -> Optional[Any]: ...  # None when no stored record matched the key
    async def remove(self, entity: Any) -> None: ...
    def query_all(self) -> Select: ...
    async def fetch(self, stmt: Select) -> List[Any]: ...
    async def count(self, stmt: Select) -> int: ...


class StorageProvider(Protocol):
    """
    Per-request unit of work.
    Hands out one collection per entity type; commit() flushes all pending writes.
    """
    def collection(self, model: type) -> StorageCollection: ...
    async def commit(self) -> None: ...
    async def refresh(self, entity: Any) -> None: ...
