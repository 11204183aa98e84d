# pyright: reportInvalidTypeForm=false
# apigen/routes.py
#
# Generic per-entity router:
# - one handler body per operation, closed over the EntitySpec (model + key type)
# - {id} path params are typed with the identity key's python type
# - entities without a single-column key only get create + get-all

import logging
from typing import Dict, Iterable, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Query, Response

from apigen.db import Settings
from apigen.discovery import EntitySpec
from apigen.handlers import EntityHandlers
from apigen.storage import SqlAlchemyStorage, get_storage

logger = logging.getLogger(__name__)


def _not_found(spec: EntitySpec) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{spec.name} not found")


def build_entity_router(spec: EntitySpec, settings: Settings) -> APIRouter:
    """
    Build an APIRouter for a single entity.
    - Prefix: /{name}
    - Tags:   [{name}]
    """
    router = APIRouter(prefix=f"/{spec.name}", tags=[spec.name])
    handlers = EntityHandlers(spec, settings)
    CreateModel = handlers.models.create
    UpdateModel = handlers.models.update
    RefModel = handlers.models.ref
    ReadModel = handlers.models.read
    PageModel = handlers.models.page

    # -------- CREATE
    @router.post("/create", response_model=ReadModel, status_code=201, name=f"{spec.name}__create")
    async def create_item(
        response: Response,
        payload: CreateModel = Body(...),
        storage: SqlAlchemyStorage = Depends(get_storage),
    ):
        obj = await handlers.create(storage, payload.model_dump(exclude_unset=True))
        if spec.has_key:
            response.headers["Location"] = f"/{spec.name}/get/{spec.key_of(obj)}"
        return handlers.serialize(obj)

    # -------- LIST ALL (no pagination)
    @router.get("/get-all", response_model=List[ReadModel], name=f"{spec.name}__get-all")
    async def get_all_items(storage: SqlAlchemyStorage = Depends(get_storage)):
        return [handlers.serialize(o) for o in await handlers.list_all(storage)]

    if not spec.has_key:
        return router

    KeyType = spec.key_type

    # -------- GET
    @router.get("/get/{id}", response_model=ReadModel, name=f"{spec.name}__get-by-id")
    async def get_item(id: KeyType, storage: SqlAlchemyStorage = Depends(get_storage)):
        obj = await handlers.get_by_id(storage, id)
        if obj is None:
            raise _not_found(spec)
        return handlers.serialize(obj)

    # -------- UPDATE (PUT, full replace; key comes from the body)
    @router.put("/update", response_model=ReadModel, name=f"{spec.name}__update")
    async def update_item(
        payload: UpdateModel = Body(...),
        storage: SqlAlchemyStorage = Depends(get_storage),
    ):
        obj = await handlers.update(storage, payload.model_dump())
        if obj is None:
            raise _not_found(spec)
        return handlers.serialize(obj)

    # -------- DELETE by id
    @router.delete("/delete/{id}", name=f"{spec.name}__delete-by-id")
    async def delete_item(id: KeyType, storage: SqlAlchemyStorage = Depends(get_storage)):
        if not await handlers.delete_by_id(storage, id):
            raise _not_found(spec)
        return Response(status_code=200)

    # -------- DELETE by body (identity key lookup)
    @router.delete("/delete", name=f"{spec.name}__delete-by-body")
    async def delete_item_by_body(
        payload: RefModel = Body(...),
        storage: SqlAlchemyStorage = Depends(get_storage),
    ):
        if not await handlers.delete_by_body(storage, payload.model_dump()):
            raise _not_found(spec)
        return Response(status_code=200)

    # -------- QUERY
    @router.get("/query", response_model=PageModel, name=f"{spec.name}__query")
    async def query_items(
        search: Optional[str] = Query(None, description="substring matched against searchable fields"),
        order_by: str = Query("asc", alias="orderBy", description="'desc' or anything else for ascending"),
        page: int = Query(1),
        page_size: int = Query(settings.DEFAULT_PAGE_SIZE, alias="pageSize"),
        storage: SqlAlchemyStorage = Depends(get_storage),
    ):
        return await handlers.query(storage, search, order_by, page, page_size)

    return router


def route_table(router: APIRouter) -> List[Dict[str, str]]:
    """Operation, method and path of every route registered on `router`, in registration order."""
    table: List[Dict[str, str]] = []
    for route in router.routes:
        methods = getattr(route, "methods", None)
        if not methods:
            continue
        # route names are "{entity}__{operation}"
        operation = route.name.split("__", 1)[-1]
        path = route.path if route.path.startswith(router.prefix) else router.prefix + route.path
        for method in sorted(methods):
            table.append({"operation": operation, "method": method, "path": path})
    return table


def register_entities(app: FastAPI, specs: Iterable[EntitySpec], settings: Settings) -> Dict[str, List[Dict[str, str]]]:
    """Include one router per entity; returns each entity's route table keyed by name."""
    tables: Dict[str, List[Dict[str, str]]] = {}
    for spec in specs:
        router = build_entity_router(spec, settings)
        app.include_router(router)
        tables[spec.name] = route_table(router)
        logger.info(
            "Registered /%s: %s",
            spec.name,
            ", ".join(f"{r['method']} {r['path']}" for r in tables[spec.name]),
        )
    return tables
