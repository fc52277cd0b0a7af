import time
import asyncio
import logging
from datetime import datetime, timezone
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from konsuldok.core.config import settings
from konsuldok.core.errors import AppError
from konsuldok.core.logging import setup_logging, request_id_ctx
from konsuldok.core.db import init_models
from konsuldok.api.router import api_router
from konsuldok.modules.events.outbox import run_outbox_relay

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    logger.info(
        f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {process_time:.2f}ms"
    )
    return response

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id", "-")
    token = request_id_ctx.set(rid)
    try:
        response = await call_next(request)
    finally:
        request_id_ctx.reset(token)
    response.headers["x-request-id"] = rid
    return response

def _error_body(code: str, message: str, **extra) -> dict:
    return {"error": code, "message": message, "timestamp": datetime.now(timezone.utc).isoformat(), **extra}

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"Domain error {exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message))

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(loc) for loc in err["loc"]), "message": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    logger.warning(f"Validation error on {request.url.path}: {details}")
    return JSONResponse(status_code=400, content=_error_body("INVALID_INPUT", "Validation error", details=details))

@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error for request {request.method} {request.url.path}", exc_info=True)
    return JSONResponse(status_code=503, content=_error_body("INFRASTRUCTURE_FAILURE", "A backing service is unavailable."))

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body("INTERNAL_ERROR", "An internal server error occurred."),
    )

@app.on_event("startup")
async def on_startup():
    await init_models()
    if settings.ENV != "test":
        app.state.outbox_task = asyncio.create_task(run_outbox_relay())

@app.on_event("shutdown")
async def on_shutdown():
    task = getattr(app.state, "outbox_task", None)
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Outbox relay stopped")

app.include_router(api_router, prefix=settings.API_PREFIX)
