"""Authentication endpoints."""
import ipaddress
import logging

import redis
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ..auth import create_access_token, get_current_user, verify_password
from ..config import settings
from ..database import get_db
from ..domain_errors import ForbiddenError
from ..models import User
from ..schemas import LoginRequest, TokenResponse, UserResponse
from ..services.audit_trail import append_audit_log

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


_redis_client = None


def _get_redis():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def get_client_ip(request: Request) -> str:
    if settings.TRUST_PROXY_HEADERS:
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            try:
                ipaddress.ip_address(real_ip)
                return real_ip
            except ValueError:
                pass

        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For may contain a list: client, proxy1, proxy2
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
                return candidate
            except ValueError:
                pass

    if request.client:
        return request.client.host
    return "unknown"


def _set_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


def _incr_with_ttl(key: str, ttl_seconds: int) -> tuple[int, int]:
    """
    Increment a Redis counter and ensure it has an expiry.
    Returns (value, ttl_remaining_seconds).
    """
    r = _get_redis()
    value = r.incr(key)
    if value == 1:
        r.expire(key, ttl_seconds)
    ttl = r.ttl(key)
    if ttl is None or ttl < 0:
        ttl = ttl_seconds
    return int(value), int(ttl)


def _enforce_login_rate_limits(*, request: Request) -> None:
    ip = get_client_ip(request)
    try:
        attempts, ttl = _incr_with_ttl(f"auth:rl:login:ip:{ip}", 60)
    except RedisError:
        # Fail open if Redis is down to avoid total auth outage.
        logger.exception("Redis error during login rate limiting (fail-open)")
        return
    if attempts > settings.AUTH_LOGIN_IP_LIMIT_PER_MINUTE:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Try again later.",
            headers={"Retry-After": str(ttl)},
        )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """Login with user ID and password."""
    _set_no_store(response)
    _enforce_login_rate_limits(request=request)

    user_id = payload.user_id.strip()
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.role != "admin" and not user.is_approved:
        raise ForbiddenError("USER_NOT_APPROVED", "Account is waiting for approval")

    access_token = create_access_token({"sub": str(user.id), "role": user.role})

    # Audit failure must not break successful login.
    append_audit_log(
        db,
        user_id=user.id,
        action="LOGIN",
        details=f"{user.role} {user.user_id} logged in",
        ip_address=get_client_ip(request),
    )

    return TokenResponse(
        access_token=access_token,
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
def get_me(response: Response, current_user: User = Depends(get_current_user)):
    """Get current user info."""
    _set_no_store(response)
    return UserResponse.model_validate(current_user)
