import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.schema import CreateTable

from apigen.db import make_session_factory
from apigen.declarative import Base
from apigen.discovery import build_entity_spec
from apigen.types import UUIDKey, coerce_uuid
from entities.book import Book

KEY = uuid.UUID("6f1c2b9e-3d4a-4e5f-8a7b-9c0d1e2f3a4b")


@pytest.mark.parametrize(
    "value",
    [
        KEY,
        str(KEY),
        str(KEY).upper(),
        KEY.hex,
        "{%s}" % KEY,
        KEY.urn,
        f"  {KEY}  ",
        KEY.bytes,
        bytearray(KEY.bytes),
    ],
)
def test_coerce_uuid_accepts_key_forms(value):
    assert coerce_uuid(value) == KEY


def test_coerce_uuid_passes_none():
    assert coerce_uuid(None) is None


@pytest.mark.parametrize(
    "value,exc",
    [("not-a-uuid", ValueError), (b"\x00" * 8, ValueError), (3.5, TypeError)],
)
def test_coerce_uuid_rejects(value, exc):
    with pytest.raises(exc):
        coerce_uuid(value)


def test_python_type_drives_key_type():
    assert UUIDKey().python_type is uuid.UUID
    assert build_entity_spec(Book).key_type is uuid.UUID


def test_column_ddl_per_dialect():
    pg = str(CreateTable(Book.__table__).compile(dialect=postgresql.dialect()))
    lite = str(CreateTable(Book.__table__).compile(dialect=sqlite.dialect()))
    assert "id UUID NOT NULL" in pg
    assert "id CHAR(32) NOT NULL" in lite


def test_literal_binds_accept_string_keys():
    stmt = select(Book.id).where(Book.id == str(KEY))
    sql = str(stmt.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))
    assert f"'{KEY.hex}'" in sql


async def test_lookup_by_any_string_form(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'types.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=[Book.__table__])
    try:
        async with make_session_factory(engine)() as session:
            session.add(Book(id=KEY, title="Dune", author="Herbert"))
            await session.commit()
            session.expunge_all()

            for form in (str(KEY).upper(), KEY.hex, KEY.urn):
                found = (await session.execute(select(Book).where(Book.id == form))).scalar_one()
                assert found.id == KEY
                assert isinstance(found.id, uuid.UUID)
                session.expunge_all()
    finally:
        await engine.dispose()
