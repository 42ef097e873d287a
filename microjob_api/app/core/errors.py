"""
Domain errors raised by the service layer.

All of them derive from ``ValueError`` so that endpoints which only
care about "the request could not be honoured" can keep catching
``ValueError``; endpoints that need a precise status code catch the
subclasses first.
"""


class NotFoundError(ValueError):
    """The referenced record does not exist (HTTP 404)."""


class ConflictError(ValueError):
    """The request conflicts with the current state (HTTP 409)."""


class PermissionDeniedError(ValueError):
    """The caller may not act on the referenced record (HTTP 403)."""
