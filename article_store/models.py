"""
Value types shared by the store, the snapshot codec, and the HTTP layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(slots=True)
class Article:
    """
    One managed article record.

    Parameters
    ----------
    id:
        Store-assigned identifier. Never reused after deletion.
    title, description, content:
        Text fields. Non-empty when written through the store.
    created_at:
        Creation timestamp (timezone-aware UTC).
    updated_at:
        Timestamp of the last successful update, equal to ``created_at`` for a
        fresh article.
    """

    id: int
    title: str
    description: str
    content: str
    created_at: datetime
    updated_at: datetime

    def as_dict(self) -> dict[str, Any]:
        """
        Convert the article into a JSON-friendly dictionary.

        Timestamps are rendered as ISO-8601 strings.
        """
        return {
            "id": self.id,
            "title": self.title,
            "desc": self.description,
            "content": self.content,
            "created": self.created_at.isoformat(),
            "updated": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Article":
        """
        Create an article from a dictionary produced by :meth:`as_dict`.

        Raises
        ------
        KeyError, TypeError, ValueError
            If a field is missing or has the wrong shape.
        """
        article_id = payload["id"]
        if not isinstance(article_id, int) or isinstance(article_id, bool):
            raise TypeError("Article id must be an integer.")
        texts = [payload["title"], payload["desc"], payload["content"]]
        if not all(isinstance(text, str) for text in texts):
            raise TypeError("Article text fields must be strings.")
        return cls(
            id=article_id,
            title=texts[0],
            description=texts[1],
            content=texts[2],
            created_at=datetime.fromisoformat(payload["created"]),
            updated_at=datetime.fromisoformat(payload["updated"]),
        )


@dataclass(frozen=True, slots=True)
class ArticleUpdate:
    """
    Partial update request.

    A field left as ``None`` or set to an empty string keeps the stored
    value. Any other value replaces it.
    """

    title: str | None = None
    description: str | None = None
    content: str | None = None

    def provided(self) -> dict[str, str]:
        """Return only the fields that carry a non-empty replacement value."""
        values = {
            "title": self.title,
            "description": self.description,
            "content": self.content,
        }
        return {name: value for name, value in values.items() if value}


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    Point-in-time copy of the collection and the id counter.

    Snapshots are disconnected from the live store: they are taken under the
    store's shared lock and may be handed to another thread for encoding.
    """

    articles: tuple[Article, ...] = field(default_factory=tuple)
    next_id: int = 1
