from pydantic import BaseModel
from typing import Optional


class SessionContext(BaseModel):
    """
    Caller identity for a single request. Passed explicitly into query
    helpers instead of living in module-level client state.
    """
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class MeResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False
    vendor_id: Optional[str] = None
