"""
Fixed seed content loaded when no usable snapshot exists.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from .models import Article, Snapshot

_SEED_ARTICLES: tuple[tuple[str, str, str, timedelta], ...] = (
    (
        "Introduction to Python",
        "Learn the basics of the Python programming language",
        "Python is a dynamically typed, interpreted programming language with a large "
        "standard library, first-class functions, and a strong focus on readability.",
        timedelta(hours=24),
    ),
    (
        "Building REST APIs with FastAPI",
        "A comprehensive guide to creating REST APIs in Python",
        "REST APIs are a fundamental part of modern web development. FastAPI builds on "
        "type hints to validate requests and serialize responses, and runs on any ASGI "
        "server such as uvicorn.",
        timedelta(hours=12),
    ),
    (
        "Persisting Application State",
        "How to keep in-memory data across service restarts",
        "Small services often keep their working set in memory and write periodic "
        "snapshots to disk. This article covers snapshot formats, write ordering, and "
        "recovery on startup.",
        timedelta(hours=6),
    ),
)


def seed_snapshot(now: datetime | None = None) -> Snapshot:
    """
    Return the seed collection as a snapshot.

    Seed ids are ``1..n`` and ``next_id`` is ``n + 1``. Timestamps are placed
    in the past relative to ``now``.
    """
    reference = now or datetime.now(timezone.utc)
    articles = tuple(
        Article(
            id=index,
            title=title,
            description=description,
            content=content,
            created_at=reference - age,
            updated_at=reference - age,
        )
        for index, (title, description, content, age) in enumerate(_SEED_ARTICLES, start=1)
    )
    return Snapshot(articles=articles, next_id=len(articles) + 1)
