from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db
from models import Admin, Vendor
from utils.response_helpers import as_uuid
from .schemas import SessionContext, RefreshRequest, TokenResponse, MeResponse
from .helpers import auth_helpers
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _build_context(token: str, db: AsyncSession) -> SessionContext:
    context = auth_helpers.verify_token(token)

    user_uuid = as_uuid(context.user_id)
    if user_uuid is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: malformed user ID"
        )

    result = await db.execute(select(Admin.id).where(Admin.user_id == user_uuid))
    context.is_admin = result.scalar_one_or_none() is not None
    return context


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> SessionContext:
    """Get current user from JWT token"""
    context = await _build_context(credentials.credentials, db)
    logger.info(f"User {context.user_id} authenticated (admin={context.is_admin})")
    request.state.current_user = context
    return context


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: AsyncSession = Depends(get_db)
) -> Optional[SessionContext]:
    """Same as get_current_user, but anonymous callers get ``None``"""
    if credentials is None:
        return None
    context = await _build_context(credentials.credentials, db)
    request.state.current_user = context
    return context


@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Identity of the caller and the vendor profile they own, if any"""
    result = await db.execute(
        select(Vendor.id).where(Vendor.user_id == as_uuid(current_user.user_id))
    )
    vendor_id = result.scalar_one_or_none()

    return MeResponse(
        user_id=current_user.user_id,
        email=current_user.email,
        is_admin=current_user.is_admin,
        vendor_id=str(vendor_id) if vendor_id else None
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request_data: RefreshRequest
):
    try:
        session = await auth_helpers.refresh_token(request_data.refresh_token)

        return TokenResponse(
            access_token=session.access_token,
            refresh_token=session.refresh_token
        )

    except Exception as e:
        logger.error(f"Token refresh failed: {str(e)}")
        if isinstance(e, HTTPException):
            raise e
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token refresh failed"
        )
