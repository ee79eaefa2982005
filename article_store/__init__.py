"""
article_store
=============

Single-resource CRUD service for article records, backed by a thread-safe
in-memory collection that is mirrored to a binary snapshot file.

Main pieces:

* :class:`article_store.store.ArticleStore`: the concurrent in-memory store
* :mod:`article_store.codec`: versioned binary snapshot encoding
* :class:`article_store.persistence.PersistenceCoordinator`: load-or-seed at
  startup and a background worker that flushes snapshots after mutations
* :func:`article_store.api.create_app`: FastAPI application factory

Typical usage::

    from article_store import ArticleStore, PersistenceCoordinator, SnapshotFile

    store = ArticleStore()
    coordinator = PersistenceCoordinator(store, SnapshotFile("articles.snapshot"))
    coordinator.load_or_seed()
    coordinator.start()

    article = store.create("Title", "Short description", "Body text")

    coordinator.stop(flush=True)

Run the HTTP service with the ``article-store`` console script or
``python -m article_store``.
"""

from .api import create_app
from .codec import decode_snapshot, encode_snapshot
from .config import PersistenceConfig, ServiceConfig
from .exceptions import (
    ArticleNotFoundError,
    ArticleStoreError,
    PersistenceWriteError,
    SnapshotCorruptError,
    ValidationError,
)
from .models import Article, ArticleUpdate, Snapshot
from .persistence import PersistenceCoordinator, SnapshotFile
from .seed import seed_snapshot
from .store import ArticleStore

__all__ = [
    "Article",
    "ArticleNotFoundError",
    "ArticleStore",
    "ArticleStoreError",
    "ArticleUpdate",
    "PersistenceConfig",
    "PersistenceCoordinator",
    "PersistenceWriteError",
    "ServiceConfig",
    "Snapshot",
    "SnapshotCorruptError",
    "SnapshotFile",
    "ValidationError",
    "create_app",
    "decode_snapshot",
    "encode_snapshot",
    "seed_snapshot",
]
