# apigen/storage.py
from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import Select, func, select
from sqlalchemy import update as sa_update
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from apigen.db import get_db


class SqlCollection:
    """One entity type's table, seen through the request's session."""

    def __init__(self, session: AsyncSession, model: type) -> None:
        self.session = session
        self.model = model
        pk = list(sa_inspect(model).primary_key)
        self._key_col = pk[0] if len(pk) == 1 else None

    async def add(self, entity: Any) -> Any:
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def find_by_id(self, key: Any) -> Optional[Any]:
        return await self.session.get(self.model, key)

    async def exists(self, key: Any) -> bool:
        # selects the key column only, so nothing enters the identity map
        stmt = select(self._key_col).where(self._key_col == key).limit(1)
        return (await self.session.execute(stmt)).first() is not None

    async def update(self, entity: Any) -> Optional[Any]:
        # UPDATE ... WHERE key = :key; a row that vanished is not re-inserted
        mapper = sa_inspect(self.model)
        key_attr = mapper.get_property_by_column(self._key_col).key
        values = {
            attr.key: getattr(entity, attr.key)
            for attr in mapper.column_attrs
            if attr.key != key_attr
        }
        key = getattr(entity, key_attr)
        if not values:
            return entity if await self.exists(key) else None
        stmt = (
            sa_update(self.model)
            .where(self._key_col == key)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return entity if result.rowcount else None

    async def remove(self, entity: Any) -> None:
        await self.session.delete(entity)

    def query_all(self) -> Select:
        return select(self.model)

    async def fetch(self, stmt: Select) -> List[Any]:
        return list((await self.session.execute(stmt)).scalars().all())

    async def count(self, stmt: Select) -> int:
        total = await self.session.execute(select(func.count()).select_from(stmt.order_by(None).subquery()))
        return int(total.scalar_one())


class SqlAlchemyStorage:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._collections: Dict[type, SqlCollection] = {}

    def collection(self, model: type) -> SqlCollection:
        coll = self._collections.get(model)
        if coll is None:
            coll = self._collections[model] = SqlCollection(self.session, model)
        return coll

    async def commit(self) -> None:
        await self.session.commit()

    async def refresh(self, entity: Any) -> None:
        await self.session.refresh(entity)


async def get_storage(db: AsyncSession = Depends(get_db)) -> SqlAlchemyStorage:
    return SqlAlchemyStorage(db)
