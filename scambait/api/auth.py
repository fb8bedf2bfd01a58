"""Password login for the dashboard, backed by a signed session cookie."""

import hmac
from typing import Optional

import bcrypt
from fastapi import APIRouter, Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config.settings import settings
from scambait.api.schemas import LoginRequest
from scambait.utils.errors import AuthError, ValidationError
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

SESSION_COOKIE = "scambait_session"
_SALT = "dashboard-session"


def _serializer() -> Optional[URLSafeTimedSerializer]:
    secret = settings.session_secret or settings.dashboard_password_hash or settings.dashboard_password
    if not secret:
        return None
    return URLSafeTimedSerializer(secret, salt=_SALT)


def login_configured() -> bool:
    return bool(settings.dashboard_password_hash or settings.dashboard_password)


def verify_password(password: str) -> bool:
    if settings.dashboard_password_hash:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), settings.dashboard_password_hash.encode("utf-8"))
        except ValueError:
            logger.error("DASHBOARD_PASSWORD_HASH is not a valid bcrypt hash")
            return False
    if settings.dashboard_password:
        return hmac.compare_digest(password.encode("utf-8"), settings.dashboard_password.encode("utf-8"))
    return False


def issue_session_token() -> str:
    serializer = _serializer()
    if serializer is None:
        raise AuthError("Dashboard login is not configured", code="AUTH_NOT_CONFIGURED")
    return serializer.dumps({"dashboard": True})


def verify_session_token(token: Optional[str]) -> bool:
    serializer = _serializer()
    if not token or serializer is None:
        return False
    try:
        payload = serializer.loads(token, max_age=settings.session_max_age)
    except SignatureExpired:
        logger.info("Dashboard session expired")
        return False
    except BadSignature:
        return False
    return isinstance(payload, dict) and payload.get("dashboard") is True


def require_dashboard_session(request: Request) -> None:
    """Dependency guarding the dashboard routes."""
    if not verify_session_token(request.cookies.get(SESSION_COOKIE)):
        raise AuthError("Authentication required")


@router.post("/login")
def login(payload: LoginRequest, response: Response) -> dict:
    if not payload.password:
        raise ValidationError.required_field("password")
    if not login_configured():
        logger.error("Login attempted but no dashboard password is configured")
        raise AuthError.invalid_credentials()
    if not verify_password(payload.password):
        logger.warning("Failed dashboard login attempt")
        raise AuthError.invalid_credentials()

    response.set_cookie(
        SESSION_COOKIE,
        issue_session_token(),
        max_age=settings.session_max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    logger.info("Dashboard login succeeded")
    return {"success": True}


@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(SESSION_COOKIE, path="/")
    return {"success": True}
