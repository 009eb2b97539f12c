from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from models import Rider, Listing, RIDER_ZONES
from utils.errors import ValidationFailure
from utils.query_engine import Facet, ListQueryConfig, ListQueryEngine
from utils.response_helpers import as_uuid
from routers.vendors.helpers import normalize_phone
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

AVAILABILITY = {
    "available": True,
    "busy": False,
}

RIDER_PHONE_DIGITS = (10, 13)

# Available riders first
RIDER_SORTS = {
    "recommended": [Rider.is_available.desc(), Rider.created_at.desc()],
    "newest": [Rider.created_at.desc()],
}

rider_engine = ListQueryEngine(ListQueryConfig(
    name="riders",
    model=Rider,
    path="/delivery/riders",
    search_columns=[Rider.name, Rider.phone, Rider.whatsapp],
    sorts=RIDER_SORTS,
    default_sort="recommended",
    page_size=24,
    facets=[
        Facet("zone", lambda value: Rider.zone == value, choices=RIDER_ZONES),
        Facet("availability", lambda value: Rider.is_available.is_(AVAILABILITY[value]), choices=tuple(AVAILABILITY)),
    ],
    base_filters=[Rider.verified.is_(True)],
))


def format_naira(amount: int) -> str:
    return f"₦{amount:,}"


def dispatch_message(
    listing: Optional[Listing] = None,
    dropoff: Optional[str] = None,
    buyer_phone: Optional[str] = None,
    note: Optional[str] = None,
) -> Dict[str, Optional[str]]:
    """
    Pre-filled WhatsApp text for a delivery request. With a listing the
    item, price and pickup point come from the listing and its vendor.
    """
    dropoff = (dropoff or "").strip()
    buyer_phone = (buyer_phone or "").strip()
    note = (note or "").strip()

    if listing is not None:
        vendor = listing.vendor
        pickup = (vendor.location if vendor else None) or listing.location or "Pickup location to be confirmed"
        if listing.price is not None:
            price_text = format_naira(listing.price)
        else:
            price_text = listing.price_label or "Contact for price"

        lines = [
            "Hi, I need delivery for an order on JABU MARKET.",
            f"Item: {listing.title}",
            f"Price: {price_text}",
            f"Pickup: {pickup}",
            f"Drop-off: {dropoff}" if dropoff else "Drop-off: (please ask me)",
            f"Buyer Phone: {buyer_phone}" if buyer_phone else "",
            f"Note: {note}" if note else "",
        ]
    else:
        pickup = None
        lines = [
            "Hi, I need a delivery agent.",
            f"Drop-off: {dropoff}" if dropoff else "Drop-off: (my location)",
            f"My Phone: {buyer_phone}" if buyer_phone else "",
            f"Note: {note}" if note else "",
        ]

    return {
        "message": "\n".join(line for line in lines if line),
        "pickup_location": pickup,
        "listing_title": listing.title if listing is not None else None,
    }


class DeliveryHelpers:
    """Helper functions for the rider directory"""

    @staticmethod
    async def get_listing_for_dispatch(db: AsyncSession, listing_id: Optional[str]) -> Optional[Listing]:
        """The listing a delivery is for. Unknown ids fall back to a generic request."""
        listing_uuid = as_uuid(listing_id) if listing_id else None
        if listing_uuid is None:
            return None

        result = await db.execute(
            select(Listing)
            .options(selectinload(Listing.vendor))
            .where(Listing.id == listing_uuid)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def validate_application(data: Dict[str, Any]) -> Dict[str, Any]:
        name = " ".join((data.get("name") or "").split())
        if len(name) < 2:
            raise ValidationFailure("name", "Enter your name.")

        low, high = RIDER_PHONE_DIGITS
        phone = normalize_phone(data.get("phone"))
        if not low <= len(phone) <= high:
            raise ValidationFailure("phone", "Enter a valid phone number.")

        if data.get("same_as_phone", True):
            whatsapp = phone
        else:
            whatsapp = normalize_phone(data.get("whatsapp")) or None
            if whatsapp and not low <= len(whatsapp) <= high:
                raise ValidationFailure("whatsapp", "Enter a valid WhatsApp number.")

        zone = data.get("zone") or None
        if zone is not None and zone not in RIDER_ZONES:
            raise ValidationFailure("zone", "Pick a zone from the list.")

        return {
            "name": name,
            "phone": phone,
            "whatsapp": whatsapp,
            "zone": zone,
            "fee_note": (data.get("fee_note") or "").strip() or None,
        }


delivery_helpers = DeliveryHelpers()
