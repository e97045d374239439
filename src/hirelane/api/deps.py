from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from hirelane.config import Settings, get_settings
from hirelane.core.auth import Principal, verify_token
from hirelane.db.repositories import Repository
from hirelane.db.session import get_db_session
from hirelane.storage.drive import GoogleDriveStorage, get_document_storage


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_storage() -> GoogleDriveStorage:
    return get_document_storage()


def get_current_principal(
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="bearer token required")

    token = authorization.split(" ", maxsplit=1)[1].strip()
    user_id = verify_token(token, settings.secret_key)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid bearer token")

    user = Repository(db).get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid bearer token")
    return Principal(user_id=user.id, role=user.role)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="administrator role required")
    return principal
