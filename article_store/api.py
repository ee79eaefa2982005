"""
FastAPI application exposing the article store over HTTP.

Routes
------
* ``GET /``: welcome message
* ``GET /healthz``: article count and persistence counters
* ``GET /articles``: list all articles
* ``GET /articles/{id}``: fetch one article
* ``POST /articles``: create an article
* ``PUT /articles/{id}``: partially update an article
* ``DELETE /articles/{id}``: delete an article

Every response uses the ``{"message", "data", "error"}`` envelope, with
``data`` and ``error`` omitted when empty. Endpoints are plain functions, so
the ASGI server runs them concurrently on its worker threadpool against the
one shared :class:`ArticleStore`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import ServiceConfig
from .exceptions import ArticleNotFoundError, ValidationError
from .models import ArticleUpdate
from .persistence import PersistenceCoordinator, SnapshotFile
from .seed import seed_snapshot
from .store import ArticleStore

_LOGGER = logging.getLogger(__name__)

_UPDATE_FIELDS = {"title": "title", "desc": "description", "content": "content"}


def _envelope(message: str, *, data: Any = None, error: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"message": message}
    if data is not None:
        body["data"] = data
    if error:
        body["error"] = error
    return body


def _parse_id(raw_id: str) -> int:
    try:
        return int(raw_id)
    except ValueError as exc:
        raise ValidationError("Invalid article ID") from exc


def _text_field(payload: dict[str, Any], name: str) -> str | None:
    value = payload.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Field {name!r} must be a string.")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValidationError(f"Field {name!r} is not valid Unicode text.") from exc
    return value


def get_store(request: Request) -> ArticleStore:
    """Dependency returning the store bound to the running application."""
    return request.app.state.store


def get_coordinator(request: Request) -> PersistenceCoordinator | None:
    """Dependency returning the persistence coordinator, if persistence is on."""
    return request.app.state.coordinator


def create_app(
    config: ServiceConfig | None = None,
    *,
    store: ArticleStore | None = None,
    coordinator: PersistenceCoordinator | None = None,
) -> FastAPI:
    """
    Build the HTTP application and its services.

    Parameters
    ----------
    config:
        Service configuration. Defaults to :class:`ServiceConfig` defaults.
    store:
        Pre-built store used as-is (no seeding, no persistence) when no
        coordinator is given.
    coordinator:
        Pre-built coordinator. Its store is used, and on startup it runs
        load-or-seed and its background worker.

    Without either argument a fresh store is created; it is backed by a
    snapshot file when ``config.persistence.enabled`` and seeded in memory
    otherwise.
    """
    config = config or ServiceConfig()
    if coordinator is not None:
        store = coordinator.store
    elif store is None:
        store = ArticleStore()
        persistence = config.persistence
        if persistence.enabled:
            coordinator = PersistenceCoordinator(
                store,
                SnapshotFile(
                    persistence.snapshot_path,
                    fsync=persistence.fsync,
                    atomic=persistence.atomic_writes,
                ),
            )
        else:
            store.load_snapshot(seed_snapshot())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if coordinator is not None:
            coordinator.load_or_seed()
            coordinator.start()
            _LOGGER.info("Data is persisted to file: %s", coordinator.snapshot_file.path)
        _LOGGER.info("Article store ready with %s articles.", store.count())
        try:
            yield
        finally:
            if coordinator is not None:
                coordinator.stop(flush=True)

    app = FastAPI(title="article-store", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.state.coordinator = coordinator
    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=_envelope("Bad request", error=str(exc)))

    @app.exception_handler(ArticleNotFoundError)
    async def _not_found(request: Request, exc: ArticleNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content=_envelope("Article not found", error=str(exc)))

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=_envelope("Invalid JSON format", error="Request body must be a JSON object."),
        )


def _register_routes(app: FastAPI) -> None:
    @app.get("/")
    def home() -> dict[str, Any]:
        return _envelope(
            "Welcome to the article store API with persistent file storage! "
            "Use /articles for CRUD operations."
        )

    @app.get("/healthz")
    def healthz(
        store: ArticleStore = Depends(get_store),
        coordinator: PersistenceCoordinator | None = Depends(get_coordinator),
    ) -> dict[str, Any]:
        return {
            "status": "ok",
            "articles": store.count(),
            "persistence": coordinator.stats() if coordinator is not None else None,
        }

    @app.get("/articles")
    def list_articles(store: ArticleStore = Depends(get_store)) -> dict[str, Any]:
        articles = [article.as_dict() for article in store.list()]
        return _envelope("Articles retrieved successfully", data=articles)

    @app.get("/articles/{article_id}")
    def get_article(article_id: str, store: ArticleStore = Depends(get_store)) -> dict[str, Any]:
        article = store.get(_parse_id(article_id))
        return _envelope("Article retrieved successfully", data=article.as_dict())

    @app.post("/articles", status_code=201)
    def create_article(
        payload: dict[str, Any],
        store: ArticleStore = Depends(get_store),
    ) -> dict[str, Any]:
        article = store.create(
            _text_field(payload, "title") or "",
            _text_field(payload, "desc") or "",
            _text_field(payload, "content") or "",
        )
        return _envelope("Article created successfully", data=article.as_dict())

    @app.put("/articles/{article_id}")
    def update_article(
        article_id: str,
        payload: dict[str, Any],
        store: ArticleStore = Depends(get_store),
    ) -> dict[str, Any]:
        parsed_id = _parse_id(article_id)
        changes = ArticleUpdate(
            **{attr: _text_field(payload, key) for key, attr in _UPDATE_FIELDS.items()}
        )
        article = store.update(parsed_id, changes)
        return _envelope("Article updated successfully", data=article.as_dict())

    @app.delete("/articles/{article_id}")
    def delete_article(article_id: str, store: ArticleStore = Depends(get_store)) -> dict[str, Any]:
        article_id_int = _parse_id(article_id)
        if not store.delete(article_id_int):
            raise ArticleNotFoundError(article_id_int)
        return _envelope("Article deleted successfully")
