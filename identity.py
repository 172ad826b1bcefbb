import time
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.identity_secret, salt="owner-token")


def issue_owner_token(owner_id: str) -> str:
    token_data = {"o": owner_id, "ts": int(time.time())}
    return _serializer().dumps(token_data)


def resolve_owner(token: str, max_age_hours: Optional[int] = None) -> Optional[str]:
    """Owner id carried by a signed token, or None when it is invalid or expired."""
    if not token:
        return None
    if max_age_hours is None:
        max_age_hours = get_settings().token_max_age_hours
    try:
        data = _serializer().loads(token, max_age=max_age_hours * 3600)
    except BadSignature:
        return None

    owner_id = data.get("o") if isinstance(data, dict) else None
    if not isinstance(owner_id, str) or not owner_id:
        return None
    return owner_id
