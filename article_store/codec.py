"""
Binary snapshot codec for article store persistence.

The format intentionally stays simple:

1. A fixed header packed as ``!4sHI``: magic ``b"ARTS"``, an unsigned 16-bit
   format version, and the unsigned 32-bit body length.
2. The body is UTF-8 JSON: ``{"articles": [...], "next_id": n}``.
3. Articles use the same dictionary shape as the HTTP API
   (:meth:`article_store.models.Article.as_dict`).

Encoding uses sorted keys and compact separators so identical snapshots always
produce identical bytes.
"""

from __future__ import annotations

import json
import struct
from typing import Any

from .exceptions import SnapshotCorruptError
from .models import Article, Snapshot

_HEADER = struct.Struct("!4sHI")
SNAPSHOT_MAGIC = b"ARTS"
SNAPSHOT_FORMAT_VERSION = 1


def encode_snapshot(snapshot: Snapshot) -> bytes:
    """
    Encode a snapshot into a versioned binary blob.

    Returns
    -------
    bytes
        Header plus JSON body, ready to be written to disk.
    """
    document = {
        "articles": [article.as_dict() for article in snapshot.articles],
        "next_id": snapshot.next_id,
    }
    # ASCII escaping keeps lone surrogates from request payloads encodable.
    body = json.dumps(
        document,
        separators=(",", ":"),
        sort_keys=True,
        ensure_ascii=True,
    ).encode("utf-8")
    return _HEADER.pack(SNAPSHOT_MAGIC, SNAPSHOT_FORMAT_VERSION, len(body)) + body


def decode_snapshot(data: bytes) -> Snapshot:
    """
    Decode a blob produced by :func:`encode_snapshot`.

    Raises
    ------
    SnapshotCorruptError
        If the header or body is truncated, the magic or version does not
        match, the JSON is malformed, or the decoded state violates the
        collection invariants (duplicate ids, stale ``next_id``).
    """
    if len(data) < _HEADER.size:
        raise SnapshotCorruptError(
            f"Snapshot is {len(data)} bytes; header alone needs {_HEADER.size}."
        )
    magic, version, length = _HEADER.unpack_from(data)
    if magic != SNAPSHOT_MAGIC:
        raise SnapshotCorruptError(f"Unexpected snapshot magic {magic!r}.")
    if version != SNAPSHOT_FORMAT_VERSION:
        raise SnapshotCorruptError(
            f"Unsupported snapshot version {version}; expected {SNAPSHOT_FORMAT_VERSION}."
        )
    body = data[_HEADER.size:]
    if len(body) != length:
        raise SnapshotCorruptError(
            f"Snapshot body is {len(body)} bytes; header declares {length}."
        )
    try:
        document = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SnapshotCorruptError("Failed to decode snapshot body.") from exc
    return _snapshot_from_document(document)


def _snapshot_from_document(document: Any) -> Snapshot:
    if not isinstance(document, dict):
        raise SnapshotCorruptError("Snapshot body must be a JSON object.")
    raw_articles = document.get("articles")
    next_id = document.get("next_id")
    if not isinstance(raw_articles, list):
        raise SnapshotCorruptError("Snapshot 'articles' must be a list.")
    if not isinstance(next_id, int) or isinstance(next_id, bool) or next_id < 1:
        raise SnapshotCorruptError("Snapshot 'next_id' must be a positive integer.")

    articles: list[Article] = []
    seen: set[int] = set()
    for index, raw in enumerate(raw_articles):
        if not isinstance(raw, dict):
            raise SnapshotCorruptError(f"Snapshot article #{index} is not an object.")
        try:
            article = Article.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotCorruptError(f"Snapshot article #{index} is malformed.") from exc
        if article.id in seen:
            raise SnapshotCorruptError(f"Snapshot contains duplicate article id {article.id}.")
        if article.id >= next_id:
            raise SnapshotCorruptError(
                f"Snapshot article id {article.id} is not below next_id {next_id}."
            )
        seen.add(article.id)
        articles.append(article)
    return Snapshot(articles=tuple(articles), next_id=next_id)
