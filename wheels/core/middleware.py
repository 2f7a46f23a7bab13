import logging
import time
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


def request_id_for(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = f"{int(time.time() * 1000)}-{id(request)}"
        request.state.request_id = request_id
    return request_id


async def log_requests(request: Request, call_next: Callable):
    start_time = time.time()
    request_id = request_id_for(request)

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(f"[{request_id}] {request.method} {request.url.path} - ERROR: {str(e)} - {process_time:.2f}s")
        raise

    process_time = time.time() - start_time
    if response.status_code >= 500:
        logger.warning(f"[{request_id}] {request.method} {request.url.path} - {response.status_code} - {process_time:.2f}s")
    elif process_time > SLOW_REQUEST_SECONDS or response.status_code >= 400:
        logger.info(f"[{request_id}] {request.method} {request.url.path} - {response.status_code} - {process_time:.2f}s")
    else:
        logger.debug(f"[{request_id}] {request.method} {request.url.path} - {response.status_code}")
    return response


async def global_exception_handler(request: Request, exc: Exception):
    request_id = request_id_for(request)
    logger.error(f"[{request_id}] Unhandled {type(exc).__name__} in {request.method} {request.url.path}: {str(exc)}", exc_info=True)

    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
