from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import HTTPAuthorizationCredentials

from errors import DuplicateAccountError, InvalidCredentialsError
from protocol_core import ProtocolService
from records import UserAccount

from .. import schemas
from ..auth import bearer_scheme, get_current_user, get_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def register_user(data: schemas.UserCreate, service: ProtocolService = Depends(get_service)):
    try:
        account = service.accounts.sign_up(data.email, data.password)
    except DuplicateAccountError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists."
        )
    return schemas.UserOut(id=account.id, email=account.email)


@router.post("/login", response_model=schemas.Token)
def login_user(data: schemas.UserLogin, service: ProtocolService = Depends(get_service)):
    try:
        account = service.accounts.log_in(data.email, data.password)
    except InvalidCredentialsError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = service.accounts.open_session(account.id)
    return {"access_token": token, "token_type": "bearer"}


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    user: UserAccount = Depends(get_current_user),
    service: ProtocolService = Depends(get_service),
):
    service.accounts.close_session(credentials.credentials)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
