from pydantic import BaseModel, Field
from typing import Optional, List
from utils.response_helpers import PageResponse
from routers.vendors.schemas import VendorProfileResponse
from routers.materials.schemas import MaterialResponse
from routers.delivery.schemas import RiderResponse


class VerificationUpdate(BaseModel):
    status: str = Field(..., description="unverified | requested | under_review | verified | rejected | suspended")
    note: Optional[str] = None


class BulkVerificationUpdate(VerificationUpdate):
    vendor_ids: List[str] = Field(..., min_length=1)


class SkippedItem(BaseModel):
    id: str
    reason: str


class BulkVerificationResponse(BaseModel):
    updated: List[str]
    skipped: List[SkippedItem]


class AdminVendorListResponse(PageResponse):
    vendors: List[VendorProfileResponse]


class MaterialApprove(BaseModel):
    verified: Optional[bool] = None
    featured: Optional[bool] = None


class BulkMaterialApprove(MaterialApprove):
    material_ids: List[str] = Field(..., min_length=1)


class BulkMaterialApproveResponse(BaseModel):
    approved: List[str]
    missing: List[str]


class AdminMaterialListResponse(PageResponse):
    materials: List[MaterialResponse]


class AdminRiderListResponse(PageResponse):
    riders: List[RiderResponse]


class BulkRiderUpdate(BaseModel):
    rider_ids: List[str] = Field(..., min_length=1)
    verified: Optional[bool] = None
    is_available: Optional[bool] = None


class BulkRiderUpdateResponse(BaseModel):
    updated: List[str]
    missing: List[str]


class ModerationSummary(BaseModel):
    vendors_pending: int
    vendors_all: int
    riders_pending: int
    riders_all: int
    materials_pending: int
    materials_all: int
