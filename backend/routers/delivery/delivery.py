from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import Rider
from utils.errors import QueryFailure, ValidationFailure, query_failure_exception, validation_failure_exception
from utils.response_helpers import safe_model_validate, page_fields
from routers.delivery.schemas import RiderApplication, RiderResponse, RiderListResponse
from routers.delivery.helpers import delivery_helpers, rider_engine, dispatch_message
from routers.vendors.helpers import whatsapp_link, call_link
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/delivery", tags=["Delivery"])


def rider_to_response(rider: Rider, message: Optional[str] = None) -> RiderResponse:
    return safe_model_validate(
        RiderResponse,
        rider,
        whatsapp_url=whatsapp_link(rider.whatsapp or rider.phone, message),
        call_url=call_link(rider.phone),
    )


@router.get("/riders", response_model=RiderListResponse)
async def list_riders(
    q: Optional[str] = Query(None, description="Search name and phone numbers"),
    zone: Optional[str] = Query(None, description="Campus | Male Hostels | Female Hostels | Town | all"),
    availability: Optional[str] = Query(None, description="available | busy | all"),
    sort: Optional[str] = Query(None, description="recommended | newest"),
    page: Optional[str] = Query(None),
    listing: Optional[str] = Query(None, description="Listing the delivery is for"),
    dropoff: Optional[str] = Query(None),
    phone: Optional[str] = Query(None, description="Buyer phone to include in the message"),
    note: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Verified riders, each with a WhatsApp link carrying a pre-filled delivery request
    """
    try:
        order = await delivery_helpers.get_listing_for_dispatch(db, listing)
        dispatch = dispatch_message(order, dropoff=dropoff, buyer_phone=phone, note=note)

        result = await rider_engine.fetch(
            db, {"q": q, "zone": zone, "availability": availability, "sort": sort, "page": page}
        )

        return RiderListResponse(
            riders=[rider_to_response(rider, dispatch["message"]) for rider in result.rows],
            **dispatch,
            **page_fields(rider_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, rider_engine.config.path)
    except Exception as e:
        logger.error(f"Error listing riders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load riders"
        )


@router.post("/riders/apply", response_model=RiderResponse, status_code=status.HTTP_201_CREATED)
async def apply_as_rider(
    application: RiderApplication,
    db: AsyncSession = Depends(get_db)
):
    """Join the rider directory. New riders stay hidden until an admin verifies them."""
    try:
        values = delivery_helpers.validate_application(application.model_dump())
        rider = Rider(**values, is_available=True, verified=False)

        db.add(rider)
        await db.commit()
        await db.refresh(rider)

        logger.info(f"Rider application received: {rider.id}")
        return rider_to_response(rider)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except Exception as e:
        await db.rollback()
        logger.error(f"Error saving rider application: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit application"
        )
