from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from constants import HEALTH_MESSAGE
from logging_config import get_logger

logger = get_logger(__name__)

health_router = APIRouter(tags=["health"])


@health_router.api_route(
    "/{path:path}",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    response_class=PlainTextResponse,
    include_in_schema=False,
)
async def liveness(path: str, request: Request):
    # Any plain HTTP request on the relay port is answered the same way
    client_host = request.client.host if request.client else "unknown"
    logger.debug(f"Liveness request {request.method} /{path} from {client_host}")
    return PlainTextResponse(HEALTH_MESSAGE, status_code=200)
