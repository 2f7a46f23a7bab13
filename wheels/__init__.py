"""Minimal web application scaffold on top of FastAPI."""

from .app import Application
from .controller import WebController
from .core.errors import ModelStateError, PersistenceError, QueryError, RecordNotFound
from .core.http import Halt
from .services.database import Database, get_database
from .services.model import Model

__all__ = [
    "Application",
    "Database",
    "Halt",
    "Model",
    "ModelStateError",
    "PersistenceError",
    "QueryError",
    "RecordNotFound",
    "WebController",
    "get_database",
]
