"""
Custom exceptions used by the article store service.

Keeping service-specific errors in one module gives the HTTP layer a single
import surface for mapping failures to transport-level status codes.
"""


class ArticleStoreError(Exception):
    """Base error type for all service-level exceptions."""


class ValidationError(ArticleStoreError):
    """
    Raised when a create or update request carries an invalid field value.

    The HTTP layer reports this as a client error; the store state is left
    untouched.
    """


class ArticleNotFoundError(ArticleStoreError):
    """
    Raised when an operation references an article id that does not exist.
    """

    def __init__(self, article_id: int) -> None:
        super().__init__(f"Article {article_id} not found.")
        self.article_id = article_id


class SnapshotCorruptError(ArticleStoreError):
    """
    Raised when a persisted snapshot cannot be decoded.

    This typically indicates a truncated write, a foreign file at the snapshot
    path, or a snapshot produced by an incompatible format version.
    """


class PersistenceWriteError(ArticleStoreError):
    """
    Raised when a snapshot cannot be written to disk.

    The persistence coordinator catches and logs this error; in-memory state
    is never rolled back because of a failed write.
    """
