from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import settings
from scambait.api import auth, calls, public, settings_routes, stats, webhooks
from scambait.api.routes import router
from scambait.database.db import init_db
from scambait.utils.errors import AppError, format_error_response, get_error_status_code
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(title="Scam-bait Call Dashboard", version=settings.app_version, debug=settings.debug)
app.include_router(router)
app.include_router(webhooks.router)
app.include_router(auth.router)
app.include_router(calls.router)
app.include_router(stats.router)
app.include_router(public.router)
app.include_router(settings_routes.router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(format_error_response(exc), status_code=get_error_status_code(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details[".".join(loc) or "body"] = error.get("msg", "Invalid value")
    return JSONResponse(
        {"error": "Invalid request", "code": "VALIDATION_ERROR", "details": details},
        status_code=400,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(format_error_response(exc, expose_internal=settings.is_development), status_code=500)


@app.on_event("startup")
async def startup_event() -> None:
    logger.info("Starting scam-bait dashboard %s in %s mode", settings.app_version, settings.environment)
    if not settings.twilio_configured:
        logger.warning("Twilio credentials missing; webhook signatures and recording downloads will not work")
    if not settings.storage_configured:
        logger.warning("Recording storage not configured; recordings will not be archived")
    init_db()
