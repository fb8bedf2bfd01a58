from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config.settings import settings
from scambait.database.db import check_connection, get_db
from scambait.utils.errors import DatabaseError
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
async def root() -> dict:
    return {"status": "ok", "message": "Scam-bait call dashboard is running", "version": settings.app_version}


def _database_status(db: Session) -> dict:
    try:
        return {"status": "up", "latency": check_connection(db)}
    except Exception as exc:
        logger.error("Health check: database unreachable: %s", exc)
        error = DatabaseError.connection_failed(str(exc) if settings.is_development else None)
        return {"status": "down", "error": error.message}


@router.get("/api/health")
def health(db: Session = Depends(get_db)) -> JSONResponse:
    database = _database_status(db)
    twilio = {"status": "configured" if settings.twilio_configured else "not_configured"}
    storage = {"status": "configured" if settings.storage_configured else "not_configured"}

    if database["status"] == "down":
        overall = "unhealthy"
    elif twilio["status"] != "configured" or storage["status"] != "configured":
        overall = "degraded"
    else:
        overall = "healthy"

    body = {
        "status": overall,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        "services": {"database": database, "twilio": twilio, "storage": storage},
    }
    return JSONResponse(body, status_code=503 if overall == "unhealthy" else 200)
