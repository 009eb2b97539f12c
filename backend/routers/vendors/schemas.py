from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from utils.response_helpers import PageResponse
from routers.listings.schemas import ListingResponse


class VendorProfileUpdate(BaseModel):
    name: Optional[str] = None
    whatsapp: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    vendor_type: Optional[str] = None


class VerificationRequest(BaseModel):
    note: Optional[str] = None


class VendorResponse(BaseModel):
    id: str
    name: Optional[str] = None
    whatsapp: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    vendor_type: str = "other"
    is_verified: bool = False
    whatsapp_url: Optional[str] = None
    call_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class VendorProfileResponse(VendorResponse):
    """Owner view: includes the verification workflow state"""
    user_id: Optional[str] = None
    verification_status: str = "unverified"
    verification_requested: bool = False
    verification_note: Optional[str] = None


class VendorListResponse(PageResponse):
    vendors: List[VendorResponse]


class VendorListingsResponse(PageResponse):
    listings: List[ListingResponse]


class VendorDetailResponse(BaseModel):
    vendor: VendorResponse
    listings: VendorListingsResponse
