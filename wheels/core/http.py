import logging
from typing import Dict

from fastapi import Request
from fastapi.responses import Response


logger = logging.getLogger(__name__)

REASON_PHRASES: Dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
}


def reason_phrase(code: int) -> str:
    return REASON_PHRASES.get(code, "")


class Halt(Exception):
    """Stops request processing with a response that is already built.

    Raised by ``WebController.redirect()`` and ``WebController.abort()``;
    the application returns ``response`` as is.
    """

    def __init__(self, response: Response):
        super().__init__(response.status_code)
        self.response = response


async def halt_handler(request: Request, exc: Halt) -> Response:
    logger.debug(f"Request halted: {request.method} {request.url.path} - {exc.response.status_code}")
    return exc.response
