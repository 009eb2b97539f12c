from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from utils.response_helpers import PageResponse


class RiderApplication(BaseModel):
    name: str
    phone: str
    same_as_phone: bool = True
    whatsapp: Optional[str] = None
    zone: Optional[str] = None
    fee_note: Optional[str] = None


class RiderResponse(BaseModel):
    id: str
    name: str
    phone: str
    whatsapp: Optional[str] = None
    zone: Optional[str] = None
    fee_note: Optional[str] = None
    is_available: bool = True
    verified: bool = False
    whatsapp_url: Optional[str] = None
    call_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RiderListResponse(PageResponse):
    riders: List[RiderResponse]
    message: str
    pickup_location: Optional[str] = None
    listing_title: Optional[str] = None
