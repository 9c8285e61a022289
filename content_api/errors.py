"""
Domain error taxonomy shared by the services and the HTTP layer.

Store, validation, auth and storage errors are fatal to the operation
that raised them and reach the caller.  ``CacheError`` is the exception:
cache adapters raise it, and ``ArticleService`` always recovers from it
locally (a failed cache read is a miss, a failed cache write or
invalidation is logged and dropped).
"""


class ContentAPIError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ContentAPIError):
    """An entity violates its domain invariants."""

    status_code = 400


class NotFoundError(ContentAPIError):
    """The requested entity does not exist in the authoritative store."""

    status_code = 404


class ConflictError(ContentAPIError):
    """A uniqueness constraint would be violated (e.g. duplicate email)."""

    status_code = 409


class AuthenticationError(ContentAPIError):
    """Bad credentials, or a missing, malformed or expired bearer token."""

    status_code = 401


class StoreError(ContentAPIError):
    """Relational store failure other than not-found."""


class StorageError(ContentAPIError):
    """Local media storage failure (filesystem I/O)."""


class CacheError(ContentAPIError):
    """Cache backend failure: transport error or undecodable payload."""
