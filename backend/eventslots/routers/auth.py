import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import Settings, get_settings
from ..schemas import LoginRequest, TokenRead
from ..utils.auth import create_access_token, verify_admin_credentials

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=TokenRead)
async def login(payload: LoginRequest, settings: Settings = Depends(get_settings)) -> TokenRead:
    if not settings.auth_secret or not verify_admin_credentials(
        payload.username,
        payload.password,
        expected_username=settings.admin_username,
        expected_password=settings.admin_password,
    ):
        logger.warning("rejected admin login for %r", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = create_access_token(
        subject=payload.username,
        secret=settings.auth_secret,
        algorithm=settings.auth_algorithm,
        expires_delta=timedelta(minutes=settings.auth_token_minutes),
    )
    return TokenRead(access_token=token)
