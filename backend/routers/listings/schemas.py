from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Union
from datetime import datetime
from utils.response_helpers import PageResponse


class VendorContact(BaseModel):
    id: str
    name: Optional[str] = None
    whatsapp: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    vendor_type: str = "other"
    is_verified: bool = False

    class Config:
        from_attributes = True


# Raw form fields: price may arrive as text, checked in helpers
class ListingCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    listing_type: Optional[str] = "product"
    category: Optional[str] = None
    price: Optional[Union[int, float, str]] = None
    price_label: Optional[str] = None
    negotiable: bool = False
    location: Optional[str] = None
    image_url: Optional[str] = None


class ListingUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    listing_type: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Union[int, float, str]] = None
    price_label: Optional[str] = None
    negotiable: Optional[bool] = None
    location: Optional[str] = None
    image_url: Optional[str] = None


class ListingStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class ListingResponse(BaseModel):
    id: str
    vendor_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    listing_type: str
    category: str
    price: Optional[int] = None
    price_label: Optional[str] = None
    negotiable: bool = False
    location: Optional[str] = None
    image_url: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ListingCardResponse(ListingResponse):
    vendor_name: Optional[str] = None
    vendor_verified: bool = False


class ListingDetailResponse(ListingResponse):
    vendor: Optional[VendorContact] = None
    whatsapp_url: Optional[str] = None
    is_owner: bool = False


class ListingListResponse(PageResponse):
    listings: List[ListingCardResponse]


class MyListingsResponse(PageResponse):
    listings: List[ListingResponse]
    counts: Dict[str, int]
