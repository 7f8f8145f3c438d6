from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config import get_settings
from errors import AuthenticationError

BEARER_PREFIX = "Bearer "


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.token_secret, salt="access-token")


def issue_access_token(user_id: int) -> str:
    return _serializer().dumps({"u": user_id})


def verify_access_token(token: str, max_age_secs: Optional[int] = None) -> int:
    """Return the user id carried by ``token`` or raise AuthenticationError."""
    max_age = max_age_secs or get_settings().token_max_age_secs
    try:
        data = _serializer().loads(token, max_age=max_age)
    except SignatureExpired as exc:
        raise AuthenticationError("Token expired") from exc
    except BadSignature as exc:
        raise AuthenticationError("Invalid token") from exc

    user_id = data.get("u") if isinstance(data, dict) else None
    if not isinstance(user_id, int):
        raise AuthenticationError("Invalid token")
    return user_id


def token_from_header(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("No token provided")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("No token provided")
    return token
