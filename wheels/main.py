import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .core.config import Config


logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or Config.from_env().LOG_LEVEL,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
        ]
    )


def run(app: FastAPI, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve an application with uvicorn.

    Call it after the application is built so a ``.env`` loaded by
    ``Application`` applies to the host, port and log level too.
    """
    config = Config.from_env()
    configure_logging(config.LOG_LEVEL)
    logger.info(f"Serving {app.title} in {config.ENVIRONMENT} mode")
    uvicorn.run(app, host=host or config.HOST, port=port or config.PORT)
