"""
Thread-safe in-memory article store.

The store owns the authoritative live collection and the id allocator. Reads
take the shared side of a reader/writer lock and mutations take the exclusive
side. Change listeners (for example the persistence coordinator) are notified
after the lock has been released, so slow listeners never block other callers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from .exceptions import ArticleNotFoundError, ValidationError
from .models import Article, ArticleUpdate, Snapshot
from .rwlock import ReadWriteLock

_LOGGER = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArticleStore:
    """
    Concurrent storage for article records.

    Notes
    -----
    * Articles live in an insertion-ordered dict keyed by id, so lookups are
      O(1) and :meth:`list` returns articles in creation order.
    * Every returned article is a copy; mutating it does not affect the store.
    * Ids come from a monotonic counter and are never reused.

    Parameters
    ----------
    clock:
        Callable returning the current timestamp. Defaults to UTC wall time.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._articles: dict[int, Article] = {}
        self._next_id = 1
        self._lock = ReadWriteLock()
        self._clock = clock
        self._listeners: list[ChangeListener] = []

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback fired after every committed mutation."""
        self._listeners.append(listener)

    def list(self) -> list[Article]:
        """Return copies of all articles in insertion order."""
        with self._lock.read_locked():
            return [replace(article) for article in self._articles.values()]

    def get(self, article_id: int) -> Article:
        """
        Return one article by id.

        Raises
        ------
        ArticleNotFoundError
            If no live article has this id.
        """
        with self._lock.read_locked():
            article = self._articles.get(article_id)
            if article is None:
                raise ArticleNotFoundError(article_id)
            return replace(article)

    def count(self) -> int:
        """Return the number of live articles."""
        with self._lock.read_locked():
            return len(self._articles)

    def create(self, title: str, description: str, content: str) -> Article:
        """
        Create a new article and return it.

        Raises
        ------
        ValidationError
            If any of the text fields is empty.
        """
        missing = [
            name
            for name, value in (("title", title), ("desc", description), ("content", content))
            if not value
        ]
        if missing:
            raise ValidationError(
                "Title, description, and content are required "
                f"(missing: {', '.join(missing)})."
            )

        with self._lock.write_locked():
            now = self._clock()
            article = Article(
                id=self._next_id,
                title=title,
                description=description,
                content=content,
                created_at=now,
                updated_at=now,
            )
            self._next_id += 1
            self._articles[article.id] = article
            created = replace(article)
        _LOGGER.debug("Created article id=%s", created.id)
        self._notify()
        return created

    def update(self, article_id: int, changes: ArticleUpdate) -> Article:
        """
        Apply a partial update and return the updated article.

        Only non-empty fields in ``changes`` are replaced; ``updated_at`` is
        refreshed even when no field is provided.

        Raises
        ------
        ArticleNotFoundError
            If no live article has this id.
        """
        provided = changes.provided()
        with self._lock.write_locked():
            article = self._articles.get(article_id)
            if article is None:
                raise ArticleNotFoundError(article_id)
            for name, value in provided.items():
                setattr(article, name, value)
            article.updated_at = self._clock()
            updated = replace(article)
        _LOGGER.debug("Updated article id=%s fields=%s", article_id, sorted(provided))
        self._notify()
        return updated

    def delete(self, article_id: int) -> bool:
        """
        Remove an article.

        Returns
        -------
        bool
            ``True`` when an article was removed, ``False`` if the id was
            unknown. Listeners fire only on removal.
        """
        with self._lock.write_locked():
            removed = self._articles.pop(article_id, None) is not None
        if removed:
            _LOGGER.debug("Deleted article id=%s", article_id)
            self._notify()
        return removed

    def create_snapshot(self) -> Snapshot:
        """Build a disconnected copy of the collection and id counter."""
        with self._lock.read_locked():
            return Snapshot(
                articles=tuple(replace(article) for article in self._articles.values()),
                next_id=self._next_id,
            )

    def load_snapshot(self, snapshot: Snapshot) -> None:
        """
        Replace the store state with a snapshot.

        Listeners are not notified; loading is a recovery step, not a mutation.
        """
        articles = {article.id: replace(article) for article in snapshot.articles}
        highest = max(articles, default=0)
        with self._lock.write_locked():
            self._articles = articles
            self._next_id = max(snapshot.next_id, highest + 1)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:  # noqa: BLE001 - listeners must not fail a committed mutation
                _LOGGER.exception("Article store change listener failed.")
