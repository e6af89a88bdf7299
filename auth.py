import time
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from itsdangerous import BadSignature, URLSafeSerializer

from config import get_settings
from errors import Unauthenticated

SESSION_COOKIE = "session"

security_scheme = HTTPBearer(auto_error=False)


def _serializer() -> URLSafeSerializer:
    settings = get_settings()
    return URLSafeSerializer(settings.session_secret, salt="session-token")


def issue_session_token(user_id: str, max_age_hours: Optional[int] = None) -> str:
    if max_age_hours is None:
        max_age_hours = get_settings().session_max_age_hours
    timestamp = int(time.time())
    expiry = timestamp + (max_age_hours * 3600)

    token_data = {"u": user_id, "ts": timestamp, "exp": expiry}

    return _serializer().dumps(token_data)


def read_session_token(token: Optional[str]) -> str:
    if not token:
        raise Unauthenticated()
    try:
        data = _serializer().loads(token)
    except BadSignature as exc:
        raise Unauthenticated("Invalid session") from exc

    user_id = data.get("u") if isinstance(data, dict) else None
    if not user_id:
        raise Unauthenticated("Invalid session")

    if int(time.time()) > int(data.get("exp", 0)):
        raise Unauthenticated("Session expired")

    return str(user_id)


def current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> str:
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)
    return read_session_token(token)
