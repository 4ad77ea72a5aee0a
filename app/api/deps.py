import structlog
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.security import decode_token
from app.db.session import get_db
from app.models.user import User
from app.utils.object_id import is_valid_object_id

logger = structlog.get_logger()


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def _load_user(db: Session, payload: dict) -> User:
    user_id = payload.get("sub")

    if not user_id or not is_valid_object_id(user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    user = db.query(User).filter(User.id == user_id.lower()).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )
    return user


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from this request's bearer token only."""
    token = _bearer_token(request)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _load_user(db, decode_token(token))


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like ``get_current_user`` but anonymous (or bad) credentials yield None."""
    token = _bearer_token(request)
    if not token:
        return None
    try:
        return _load_user(db, decode_token(token))
    except HTTPException:
        return None


def require_admin(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    logger.info(
        "admin_action",
        action=f"{request.method} {request.url.path}",
        admin_user_id=current_user.id,
    )
    return current_user
