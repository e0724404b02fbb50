from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from coach_client import CoachClient
from protocol_core import ProtocolService
from records import UserAccount

from .database import get_db
from .store import SqlStore

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def get_coach() -> CoachClient:
    return CoachClient.from_settings()


def get_clock() -> Callable[[], datetime]:
    return datetime.now


def get_service(
    db: Session = Depends(get_db),
    coach: CoachClient = Depends(get_coach),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ProtocolService:
    return ProtocolService(SqlStore(db), coach, clock)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    service: ProtocolService = Depends(get_service),
) -> UserAccount:
    account = None
    if credentials is not None:
        account = service.accounts.account_for_session(credentials.credentials)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account
