"""FastAPI application exposing the shopping-list endpoints.

Key endpoints:
- ``POST /shopping-list/standardize-text``: raw lines to items (no merging)
- ``POST /shopping-list/clean-up``: normalize and merge a stored list
- ``POST /shopping-list/find-cheapest``: compare supermarket prices
- ``POST /shopping-list/optimize``: split a list over a few supermarkets
- ``/shopping-lists/...``: create, read, edit, activate and delete stored lists
- ``GET /health``: readiness
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .config import ShopConfig, load_config
from .db import ShoppingListDB
from .errors import NotFoundError, OracleError
from .normalize import Normalizer
from .oracles import (
    ProductSearch,
    TextStandardizer,
    create_search_backend,
    create_text_backend,
)
from .service import DEFAULT_LIST_NAME, ShoppingListService

logger = logging.getLogger(__name__)


# -------------- Request models --------------

class StandardizeRequest(BaseModel):
    lines: list[Annotated[str, Field(min_length=1)]] = Field(min_length=1)
    language: str | None = None


class CleanUpRequest(BaseModel):
    listId: str | None = None
    mergeStrategy: str | None = None


class FindCheapestRequest(BaseModel):
    listId: str | None = None


class OptimizeRequest(BaseModel):
    listId: str | None = None
    maxSupermarkets: int = Field(default=2, ge=1)


class CreateListRequest(BaseModel):
    name: str = Field(default=DEFAULT_LIST_NAME, min_length=1)
    lines: list[str] = Field(default_factory=list)
    mergeStrategy: str | None = None
    active: bool = True


class AddItemRequest(BaseModel):
    text: str = Field(min_length=1)


class UpdateItemRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    quantity: float | None = Field(default=None, ge=0)
    unit: str | None = None
    category: str | None = None
    completed: bool | None = None
    notes: str | None = None


# -------------- Error mapping --------------

def _error(status: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message, **extra})


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    ]
    return _error(400, "Invalid request", details=details)


async def _on_value_error(request: Request, exc: ValueError) -> JSONResponse:
    # ParseError and InvalidStrategyError are ValueErrors too
    return _error(400, str(exc))


async def _on_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, str(exc))


async def _on_oracle_error(request: Request, exc: OracleError) -> JSONResponse:
    logger.warning("Oracle failure on %s: %s", request.url.path, exc)
    return _error(exc.status, str(exc))


async def _on_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _error(500, "Internal server error")


# -------------- App factory --------------

def create_app(
    config: ShopConfig | None = None,
    repository: ShoppingListDB | None = None,
    search: ProductSearch | None = None,
    standardizer: TextStandardizer | None = None,
) -> FastAPI:
    """Build the application and wire its collaborators.

    Oracles and the repository are created from ``config`` unless passed in.
    Whatever the app holds is opened on startup and closed on shutdown.
    """
    config = config or load_config()
    if repository is None:
        repository = ShoppingListDB(config.database.path)
    if search is None:
        search = create_search_backend(config)
    if standardizer is None:
        standardizer = create_text_backend(config)

    service = ShoppingListService(
        repository,
        Normalizer.from_config(config),
        search=search,
        standardizer=standardizer,
        search_limit=config.search.limit,
        matches_per_item=config.search.matches_per_item,
        language=config.llm.language,
    )
    oracles = [o for o in (search, standardizer) if o is not None]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for oracle in oracles:
            await oracle.open()
        logger.info("Shopping-list API ready (%d oracle(s))", len(oracles))
        try:
            yield
        finally:
            for oracle in oracles:
                try:
                    await oracle.close()
                except Exception:
                    logger.warning("Failed to close %s", type(oracle).__name__, exc_info=True)
            repository.close()

    app = FastAPI(
        title="Shopping List API",
        version="0.1.0",
        description="Normalize, merge and price shopping lists.",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(ValueError, _on_value_error)
    app.add_exception_handler(NotFoundError, _on_not_found)
    app.add_exception_handler(OracleError, _on_oracle_error)
    app.add_exception_handler(Exception, _on_unexpected)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "search": search is not None,
            "standardizer": standardizer is not None,
        }

    @app.post("/shopping-list/standardize-text")
    async def standardize_text(req: StandardizeRequest):
        items = await service.standardize_text(req.lines, req.language)
        return [i.to_dict() for i in items]

    @app.post("/shopping-list/clean-up")
    def clean_up(req: CleanUpRequest):
        result = service.clean_up(req.listId, req.mergeStrategy)
        return result.to_dict()

    @app.post("/shopping-list/find-cheapest")
    async def find_cheapest(req: FindCheapestRequest):
        result = await service.find_cheapest(req.listId)
        return result.to_dict()

    @app.post("/shopping-list/optimize")
    async def optimize(req: OptimizeRequest):
        result = await service.optimize(req.listId, req.maxSupermarkets)
        return result.to_dict()

    # SQLite-only routes are plain functions so they run in the threadpool

    @app.post("/shopping-lists", status_code=201)
    def create_list(req: CreateListRequest):
        created = service.create_list(
            req.name, req.lines, req.mergeStrategy, active=req.active
        )
        return _list_dict(created)

    @app.get("/shopping-lists/{list_id}")
    def get_list(list_id: str):
        return _list_dict(service.resolve_list(list_id))

    @app.delete("/shopping-lists/{list_id}", status_code=204)
    def delete_list(list_id: str):
        service.delete_list(list_id)
        return Response(status_code=204)

    @app.post("/shopping-lists/{list_id}/activate")
    def activate_list(list_id: str):
        return _list_dict(service.activate(list_id))

    @app.post("/shopping-lists/{list_id}/clear-completed")
    def clear_completed(list_id: str):
        return _list_dict(service.clear_completed(list_id))

    @app.post("/shopping-lists/{list_id}/items", status_code=201)
    def add_item(list_id: str, req: AddItemRequest):
        item = service.add_item(req.text, list_id)
        return item.to_dict()

    @app.patch("/shopping-lists/{list_id}/items/{item_id}")
    def update_item(list_id: str, item_id: str, req: UpdateItemRequest):
        # Only notes may be cleared with null
        changes = {
            k: v
            for k, v in req.model_dump(exclude_unset=True).items()
            if v is not None or k == "notes"
        }
        item = service.update_item(list_id, item_id, **changes)
        return item.to_dict()

    @app.delete("/shopping-lists/{list_id}/items/{item_id}", status_code=204)
    def remove_item(list_id: str, item_id: str):
        service.remove_item(list_id, item_id)
        return Response(status_code=204)

    return app


def _list_dict(shopping_list) -> dict:
    return {
        "id": shopping_list.id,
        "name": shopping_list.name,
        "active": shopping_list.active,
        "createdAt": shopping_list.created_at,
        "updatedAt": shopping_list.updated_at,
        "items": [i.to_dict() for i in shopping_list.items],
    }
