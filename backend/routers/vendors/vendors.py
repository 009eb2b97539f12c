from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import Vendor, Listing
from routers.auth.auth import get_current_user, get_optional_user
from routers.auth.schemas import SessionContext
from utils.errors import QueryFailure, ValidationFailure, query_failure_exception, validation_failure_exception
from utils.response_helpers import safe_model_validate, page_fields, as_uuid
from routers.vendors.schemas import (
    VendorProfileUpdate, VerificationRequest, VendorResponse, VendorProfileResponse,
    VendorListResponse, VendorListingsResponse, VendorDetailResponse
)
from routers.vendors.helpers import (
    vendor_helpers, vendor_engine, vendor_listings_engine, whatsapp_link, call_link
)
from routers.listings.schemas import ListingResponse
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vendors", tags=["Vendors"])


def vendor_to_response(model_class, vendor: Vendor):
    return safe_model_validate(
        model_class,
        vendor,
        is_verified=vendor.is_verified,
        whatsapp_url=whatsapp_link(vendor.whatsapp),
        call_url=call_link(vendor.phone or vendor.whatsapp),
    )


# =================
# DIRECTORY (PUBLIC)
# =================

@router.get("/", response_model=VendorListResponse)
async def list_vendors(
    q: Optional[str] = Query(None, description="Search name, location and phone"),
    type: Optional[str] = Query(None, description="food | mall | student | other | all"),
    sort: Optional[str] = Query(None, description="newest | name_asc | name_desc | type"),
    page: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Verified vendors directory"""
    try:
        result = await vendor_engine.fetch(db, {"q": q, "type": type, "sort": sort, "page": page})

        return VendorListResponse(
            vendors=[vendor_to_response(VendorResponse, vendor) for vendor in result.rows],
            **page_fields(vendor_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, vendor_engine.config.path)
    except Exception as e:
        logger.error(f"Error listing vendors: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load vendors"
        )


# =================
# OWN PROFILE
# =================

@router.get("/me", response_model=VendorProfileResponse)
async def get_my_vendor_profile(
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    vendor = await vendor_helpers.get_vendor_for_user(db, current_user.user_id)
    if not vendor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vendor profile not found"
        )
    return vendor_to_response(VendorProfileResponse, vendor)


@router.put("/me", response_model=VendorProfileResponse)
async def upsert_my_vendor_profile(
    profile_data: VendorProfileUpdate,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create the caller's vendor profile, or update the fields sent"""
    try:
        values = vendor_helpers.validate_profile(profile_data.model_dump(exclude_unset=True))
        vendor = await vendor_helpers.get_vendor_for_user(db, current_user.user_id)

        if vendor is None:
            if not values.get("name"):
                raise ValidationFailure("name", "Name is required.")
            vendor = Vendor(user_id=as_uuid(current_user.user_id), **values)
            db.add(vendor)
            logger.info(f"Vendor profile created for user {current_user.user_id}")
        else:
            for field, value in values.items():
                setattr(vendor, field, value)

        await db.commit()
        await db.refresh(vendor)

        return vendor_to_response(VendorProfileResponse, vendor)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error saving vendor profile: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save vendor profile"
        )


@router.post("/me/request-verification", response_model=VendorProfileResponse)
async def request_verification(
    request_data: VerificationRequest,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ask the admins to verify the caller's vendor profile"""
    try:
        vendor = await vendor_helpers.get_vendor_for_user(db, current_user.user_id)
        if not vendor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Vendor profile not found"
            )

        previous = vendor_helpers.apply_verification(vendor, "requested", actor="vendor", note=request_data.note)
        await db.commit()
        await db.refresh(vendor)

        logger.info(f"Vendor {vendor.id} requested verification (was {previous})")
        return vendor_to_response(VendorProfileResponse, vendor)

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error requesting verification: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to request verification"
        )


# =================
# VENDOR PAGE
# =================

@router.get("/{vendor_id}", response_model=VendorDetailResponse)
async def get_vendor(
    vendor_id: str,
    q: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="newest | price_asc | price_desc"),
    page: Optional[str] = Query(None),
    current_user: Optional[SessionContext] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Vendor profile with their active listings. Unverified vendors are visible to their owner only."""
    path = f"/vendors/{vendor_id}"
    try:
        vendor = await vendor_helpers.get_vendor(db, vendor_id)

        is_owner = current_user is not None and str(vendor.user_id) == current_user.user_id
        if not vendor.is_verified and not is_owner:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Vendor not found"
            )

        result = await vendor_listings_engine.fetch(
            db,
            {"q": q, "sort": sort, "page": page},
            extra_filters=[Listing.vendor_id == vendor.id]
        )

        return VendorDetailResponse(
            vendor=vendor_to_response(VendorResponse, vendor),
            listings=VendorListingsResponse(
                listings=[safe_model_validate(ListingResponse, listing) for listing in result.rows],
                **page_fields(vendor_listings_engine, result, path)
            )
        )

    except QueryFailure as e:
        raise query_failure_exception(e, path)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting vendor {vendor_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get vendor"
        )
