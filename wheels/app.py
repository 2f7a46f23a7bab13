import logging
from pathlib import Path
from typing import Any, Union

from dotenv import load_dotenv
from fastapi import FastAPI

from .core.http import Halt, halt_handler
from .core.middleware import global_exception_handler, log_requests


logger = logging.getLogger(__name__)


class Application(FastAPI):
    """FastAPI application that loads its environment before anything else.

    Args:
        root_dir: the application's public root; a ``.env`` file in its
            parent directory is loaded if present
        **kwargs: passed on to ``FastAPI``
    """

    def __init__(self, root_dir: Union[str, Path], **kwargs: Any):
        self.root_dir = Path(root_dir).resolve()
        self.env_file = self.root_dir.parent / ".env"

        if self.env_file.is_file():
            # Variables already in the environment win over the file
            load_dotenv(self.env_file, override=False)
            logger.info(f"Loaded environment from {self.env_file}")

        super().__init__(**kwargs)
        self.set_base_path("/")

        self.add_exception_handler(Halt, halt_handler)
        self.add_exception_handler(Exception, global_exception_handler)

        @self.middleware("http")
        async def _log_requests(request, call_next):
            return await log_requests(request, call_next)

    def set_base_path(self, base_path: str) -> None:
        """Set the path prefix the application is served under, '/' for root."""
        self.root_path = "/" + base_path.strip("/") if base_path.strip("/") else ""
