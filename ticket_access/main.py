import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from .config import settings
from .errors import TicketAccessError, TransientError, ValidationError
from .routes import api_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="ticket_access")

app.include_router(api_router)


@app.exception_handler(TicketAccessError)
def ticket_access_error_handler(request: Request, exc: TicketAccessError) -> JSONResponse:
    return JSONResponse(exc.to_response().model_dump(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
    error = ValidationError("Invalid request", details={"fields": fields})
    return JSONResponse(error.to_response().model_dump(), status_code=error.status_code)


@app.exception_handler(OperationalError)
@app.exception_handler(PoolTimeoutError)
def store_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Store unavailable while handling %s", request.url.path)
    error = TransientError()
    return JSONResponse(error.to_response().model_dump(), status_code=error.status_code)


@app.get("/health", tags=["health"])
def health_check() -> dict:
    return {"status": "ok"}
