"""Errors raised by the database accessor and the model layer."""

from typing import Optional


class QueryError(ValueError):
    """A statement could not be run with the given parameters.

    The SQLAlchemy error is chained as ``__cause__`` and kept on ``orig``.
    """

    def __init__(self, message: str, orig: Optional[BaseException] = None):
        super().__init__(message)
        self.orig = orig


class RecordNotFound(ValueError):
    """No row matches the requested primary key."""


class ModelStateError(Exception):
    """The model's state does not permit the requested operation."""


class PersistenceError(RuntimeError):
    """The statement ran but nothing was persisted."""
