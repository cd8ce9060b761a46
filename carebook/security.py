from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import jwt

from .application.models import Role, SessionContext
from .core.config import settings


def create_session_token(session: SessionContext, expires_minutes: Optional[int] = None) -> str:
    """Sign a session for the identity collaborator (login pages) to hand out."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": session.user_id,
        "role": session.role.value,
        "name": session.name,
        "email": session.email,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_jwt_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        return None


def session_from_claims(payload: Dict[str, Any]) -> Optional[SessionContext]:
    user_id = payload.get("sub")
    try:
        role = Role(payload.get("role"))
    except ValueError:
        return None
    if not user_id:
        return None
    return SessionContext(user_id=str(user_id), role=role, name=payload.get("name") or "", email=payload.get("email") or "")
