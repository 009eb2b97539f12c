from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import Listing
from routers.auth.auth import get_current_user, get_optional_user
from routers.auth.schemas import SessionContext
from utils.errors import QueryFailure, ValidationFailure, query_failure_exception, validation_failure_exception
from utils.response_helpers import safe_model_validate, page_fields
from routers.listings.schemas import (
    ListingCreate, ListingUpdate, ListingStatusUpdate, ListingResponse,
    ListingCardResponse, ListingDetailResponse, ListingListResponse,
    MyListingsResponse, VendorContact
)
from routers.listings.helpers import listing_helpers, explore_engine, my_listings_engine
from routers.vendors.helpers import vendor_helpers
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/listings", tags=["Listings"])


def _card(listing: Listing) -> ListingCardResponse:
    vendor = listing.vendor
    return safe_model_validate(
        ListingCardResponse,
        listing,
        vendor_name=vendor.name if vendor else None,
        vendor_verified=vendor.is_verified if vendor else False,
    )


def _detail(listing: Listing, current_user: Optional[SessionContext]) -> ListingDetailResponse:
    vendor = listing.vendor
    vendor_contact = None
    is_owner = False
    if vendor:
        vendor_contact = safe_model_validate(VendorContact, vendor, is_verified=vendor.is_verified)
        is_owner = current_user is not None and str(vendor.user_id) == current_user.user_id

    return safe_model_validate(
        ListingDetailResponse,
        listing,
        vendor=vendor_contact,
        whatsapp_url=listing_helpers.listing_whatsapp_url(listing),
        is_owner=is_owner,
    )


# =================
# EXPLORE
# =================

@router.get("/", response_model=ListingListResponse)
async def explore_listings(
    q: Optional[str] = Query(None, description="Search title, description and location"),
    type: Optional[str] = Query(None, description="product | service | all"),
    category: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status", description="active | active_sold | active_inactive | all"),
    sort: Optional[str] = Query(None, description="newest | price_asc | price_desc"),
    page: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Browse listings. Only active listings unless ``status`` widens the set."""
    try:
        result = await explore_engine.fetch(db, {
            "q": q,
            "type": type,
            "category": category,
            "status": status_filter,
            "sort": sort,
            "page": page,
        })

        return ListingListResponse(
            listings=[_card(listing) for listing in result.rows],
            **page_fields(explore_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, explore_engine.config.path)
    except Exception as e:
        logger.error(f"Error exploring listings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load listings"
        )


@router.get("/mine", response_model=MyListingsResponse)
async def get_my_listings(
    status_filter: Optional[str] = Query(None, alias="status", description="active | sold | inactive"),
    q: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's own listings, one status tab at a time, with per-tab counts"""
    try:
        vendor = await vendor_helpers.get_vendor_for_user(db, current_user.user_id)
        if not vendor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Vendor profile not found"
            )

        result = await my_listings_engine.fetch(
            db,
            {"status": status_filter, "q": q, "page": page},
            extra_filters=[Listing.vendor_id == vendor.id]
        )
        counts = await listing_helpers.status_counts(db, vendor.id)

        return MyListingsResponse(
            listings=[safe_model_validate(ListingResponse, listing) for listing in result.rows],
            counts=counts,
            **page_fields(my_listings_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, my_listings_engine.config.path)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting listings for user {current_user.user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load your listings"
        )


# =================
# LISTING ROUTES
# =================

@router.post("/", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
async def create_listing(
    listing_data: ListingCreate,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Post a new listing (vendors with a WhatsApp number only)"""
    try:
        vendor = await vendor_helpers.get_vendor_for_user(db, current_user.user_id)
        if not vendor:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Create a vendor profile before posting"
            )

        values = listing_helpers.validate_listing_input(listing_data.model_dump())

        if not (vendor.whatsapp or "").strip():
            raise ValidationFailure("whatsapp", "Please set your WhatsApp number on the Me page before posting.")

        listing = Listing(vendor_id=vendor.id, status="active", **values)
        db.add(listing)
        await db.commit()
        await db.refresh(listing)

        logger.info(f"Listing {listing.id} created by vendor {vendor.id}")
        return safe_model_validate(ListingResponse, listing)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating listing: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create listing"
        )


@router.get("/{listing_id}", response_model=ListingDetailResponse)
async def get_listing(
    listing_id: str,
    current_user: Optional[SessionContext] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Listing detail with vendor contact. Non-active listings are visible to their owner only."""
    try:
        listing = await listing_helpers.get_listing(db, listing_id)
        detail = _detail(listing, current_user)

        if listing.status != "active" and not detail.is_owner:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Listing not found"
            )

        return detail

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting listing {listing_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get listing"
        )


@router.patch("/{listing_id}", response_model=ListingResponse)
async def update_listing(
    listing_id: str,
    listing_data: ListingUpdate,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Edit a listing (owner only)"""
    try:
        listing = await listing_helpers.get_owned_listing(db, listing_id, current_user.user_id)

        values = listing_helpers.validate_listing_input(
            listing_data.model_dump(exclude_unset=True), partial=True
        )
        listing_helpers.check_price_exclusive(listing, values)

        for field, value in values.items():
            setattr(listing, field, value)

        await db.commit()
        await db.refresh(listing)

        logger.info(f"Listing {listing.id} updated by user {current_user.user_id}")
        return safe_model_validate(ListingResponse, listing)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating listing {listing_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update listing"
        )


@router.patch("/{listing_id}/status", response_model=ListingResponse)
async def change_listing_status(
    listing_id: str,
    status_data: ListingStatusUpdate,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a listing sold / inactive, or put it back on sale (owner only)"""
    try:
        listing = await listing_helpers.get_owned_listing(db, listing_id, current_user.user_id)
        listing_helpers.check_transition(listing.status, status_data.status)

        previous = listing.status
        listing.status = status_data.status
        await db.commit()
        await db.refresh(listing)

        logger.info(f"Listing {listing.id} status changed {previous} -> {listing.status}")
        return safe_model_validate(ListingResponse, listing)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error changing status of listing {listing_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change listing status"
        )


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a listing (owner only)"""
    try:
        listing = await listing_helpers.get_owned_listing(db, listing_id, current_user.user_id)

        await db.delete(listing)
        await db.commit()

        logger.info(f"Listing {listing_id} deleted by user {current_user.user_id}")
        return {"message": "Listing deleted successfully"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting listing {listing_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete listing"
        )
