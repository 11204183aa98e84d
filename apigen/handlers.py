# apigen/handlers.py
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from apigen.db import Settings
from apigen.discovery import EntitySpec
from apigen.query import run_query
from apigen.schemas import EntityModels, PagedResult, build_entity_models, serialize_row
from core.ports import StorageProvider

logger = logging.getLogger(__name__)


class EntityHandlers:
    """
    Generic CRUD + query bodies for one entity.

    Written once and parameterized by the EntitySpec (model + key). Each method
    receives the request's StorageProvider and performs one unit of work;
    mutations commit before returning. Not-found is reported as None/False,
    the route layer turns it into a 404.
    """

    def __init__(self, spec: EntitySpec, settings: Settings) -> None:
        self.spec = spec
        self.settings = settings
        self.models: EntityModels = build_entity_models(spec)

    def _collection(self, storage: StorageProvider):
        return storage.collection(self.spec.model)

    def serialize(self, obj: Any) -> Dict[str, Any]:
        return serialize_row(self.spec, obj)

    # -------- create / list-all (no key needed)

    async def create(self, storage: StorageProvider, data: Dict[str, Any]) -> Any:
        obj = self.spec.model(**data)
        await self._collection(storage).add(obj)
        await storage.commit()
        # pick up server-side defaults
        await storage.refresh(obj)
        logger.debug("created %s %s", self.spec.name, self.spec.key_of(obj) if self.spec.has_key else "")
        return obj

    async def list_all(self, storage: StorageProvider) -> List[Any]:
        coll = self._collection(storage)
        stmt = coll.query_all()
        if self.spec.has_key:
            stmt = stmt.order_by(self.spec.key_attr.asc())
        return await coll.fetch(stmt)

    # -------- key-dependent

    async def get_by_id(self, storage: StorageProvider, key: Any) -> Optional[Any]:
        return await self._collection(storage).find_by_id(key)

    async def update(self, storage: StorageProvider, data: Dict[str, Any]) -> Optional[Any]:
        """
        Full replace: every column is written from `data`. The write is an
        UPDATE on the key, so a record removed after the existence check
        comes back as None instead of being recreated.
        """
        coll = self._collection(storage)
        key = data.get(self.spec.key.name)
        if not await coll.exists(key):
            return None
        replacement = self.spec.model(**{f.name: data.get(f.name) for f in self.spec.fields})
        stored = await coll.update(replacement)
        if stored is None:
            return None
        await storage.commit()
        logger.debug("replaced %s %s", self.spec.name, key)
        return stored

    async def delete_by_id(self, storage: StorageProvider, key: Any) -> bool:
        coll = self._collection(storage)
        obj = await coll.find_by_id(key)
        if obj is None:
            return False
        await coll.remove(obj)
        await storage.commit()
        logger.debug("deleted %s %s", self.spec.name, key)
        return True

    async def delete_by_body(self, storage: StorageProvider, data: Dict[str, Any]) -> bool:
        # only the identity key of the body is used; the stored record is what gets removed
        return await self.delete_by_id(storage, data.get(self.spec.key.name))

    async def query(
        self,
        storage: StorageProvider,
        search: Optional[str] = None,
        order_by: Optional[str] = "asc",
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> PagedResult:
        return await run_query(
            self._collection(storage),
            self.spec,
            search=search,
            order_by=order_by,
            page=page,
            page_size=self.settings.DEFAULT_PAGE_SIZE if page_size is None else page_size,
            max_page_size=self.settings.MAX_PAGE_SIZE,
            ignore_case=self.settings.SEARCH_IGNORE_CASE,
            result_cls=self.models.page,
            row_mapper=self.serialize,
        )
