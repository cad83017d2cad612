"""Service-layer exceptions.

Both subclass ``ValueError`` so callers that only care about "the request
could not be applied" can keep catching ``ValueError``; routers use the
subclasses to pick 404 versus 409.
"""


class NotFoundError(ValueError):
    """The addressed record does not exist."""


class ConflictError(ValueError):
    """The request clashes with the current state (duplicate, wrong status, ...)."""
