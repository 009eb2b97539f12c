from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from models import Listing, LISTING_TYPES, LISTING_STATUSES
from utils.errors import ValidationFailure
from utils.query_engine import Facet, ListQueryConfig, ListQueryEngine
from utils.response_helpers import as_uuid
from routers.vendors.helpers import whatsapp_link
from config import WHATSAPP_DEFAULT_MESSAGE
from typing import Any, Dict, Optional
import logging
import math

logger = logging.getLogger(__name__)

LISTING_CATEGORIES = (
    "Phones",
    "Laptops",
    "Fashion",
    "Provisions",
    "Food",
    "Beauty",
    "Services",
    "Repairs",
    "Tutoring",
    "Others",
)

# Visibility toggle on Explore. Anything not listed resolves to "active".
STATUS_SCOPES = {
    "active": ("active",),
    "active_sold": ("active", "sold"),
    "active_inactive": ("active", "inactive"),
    "all": None,
}

STATUS_TRANSITIONS = {
    "active": ("sold", "inactive"),
    "sold": ("active",),
    "inactive": ("active",),
}


def _status_scope(value: str):
    statuses = STATUS_SCOPES.get(value)
    if statuses is None:
        return None
    return Listing.status.in_(statuses)


LISTING_SORTS = {
    "newest": [Listing.created_at.desc()],
    "price_asc": [Listing.price.asc().nulls_last()],
    "price_desc": [Listing.price.desc().nulls_last()],
}

explore_engine = ListQueryEngine(ListQueryConfig(
    name="listings",
    model=Listing,
    path="/listings",
    search_columns=[Listing.title, Listing.description, Listing.location],
    sorts=LISTING_SORTS,
    sort_aliases={"price_low": "price_asc", "price_high": "price_desc"},
    page_size=12,
    facets=[
        Facet("status", _status_scope, choices=tuple(STATUS_SCOPES), default="active"),
        Facet("type", lambda value: Listing.listing_type == value, choices=LISTING_TYPES),
        Facet("category", lambda value: Listing.category == value, choices=LISTING_CATEGORIES),
    ],
    options=[selectinload(Listing.vendor)],
))

# Owner dashboard: same rules, but the tab is a single status and no search
my_listings_engine = ListQueryEngine(ListQueryConfig(
    name="my listings",
    model=Listing,
    path="/listings/mine",
    search_columns=[Listing.title],
    sorts={"newest": [Listing.created_at.desc()]},
    page_size=12,
    facets=[
        Facet("status", lambda value: Listing.status == value, choices=LISTING_STATUSES, default="active"),
    ],
))


class ListingHelpers:
    """Helper functions for listing operations"""

    @staticmethod
    def parse_price(raw: Any) -> Optional[int]:
        """
        Accepts an int, float or numeric string. Blank means "no price".
        Fractions are truncated, the way the post form always stored them.
        """
        if raw is None:
            return None
        if isinstance(raw, bool):
            raise ValidationFailure("price", "Price must be a number.")

        if isinstance(raw, str):
            raw = raw.strip().replace(",", "")
            if raw == "":
                return None

        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise ValidationFailure("price", "Price must be a number.")

        if not math.isfinite(value):
            raise ValidationFailure("price", "Price must be a number.")
        if value < 0:
            raise ValidationFailure("price", "Price cannot be negative.")

        return int(value)

    @staticmethod
    def clean_text(raw: Optional[str]) -> Optional[str]:
        if raw is None:
            return None
        value = raw.strip()
        return value or None

    def validate_listing_input(self, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """
        Turn raw form fields into column values.

        With ``partial`` only the keys present in ``data`` are validated and
        returned (edits); otherwise title, type and category are required.
        Raises ``ValidationFailure`` for the first offending field.
        """
        values: Dict[str, Any] = {}

        if not partial or "title" in data:
            title = self.clean_text(data.get("title"))
            if not title:
                raise ValidationFailure("title", "Title is required.")
            values["title"] = title

        if not partial or "listing_type" in data:
            listing_type = data.get("listing_type") or "product"
            if listing_type not in LISTING_TYPES:
                raise ValidationFailure("listing_type", f"Type must be one of: {', '.join(LISTING_TYPES)}.")
            values["listing_type"] = listing_type

        if not partial or "category" in data:
            category = data.get("category")
            if category not in LISTING_CATEGORIES:
                raise ValidationFailure("category", "Pick a category from the list.")
            values["category"] = category

        if not partial or "price" in data:
            values["price"] = self.parse_price(data.get("price"))

        if not partial or "price_label" in data:
            values["price_label"] = self.clean_text(data.get("price_label"))

        if values.get("price") is not None and values.get("price_label") is not None:
            raise ValidationFailure("price_label", "Use either a price or a price label, not both.")

        for key in ("description", "location", "image_url"):
            if not partial or key in data:
                values[key] = self.clean_text(data.get(key))

        if not partial or "negotiable" in data:
            values["negotiable"] = bool(data.get("negotiable") or False)

        return values

    @staticmethod
    def check_price_exclusive(listing: Listing, values: Dict[str, Any]):
        """An edit that sets one side of price/price_label must not leave the other behind."""
        price = values.get("price", listing.price)
        price_label = values.get("price_label", listing.price_label)
        if price is not None and price_label is not None:
            raise ValidationFailure("price_label", "Use either a price or a price label, not both.")

    @staticmethod
    def check_transition(current: str, target: str):
        if target not in LISTING_STATUSES:
            raise ValidationFailure("status", f"Status must be one of: {', '.join(LISTING_STATUSES)}.")
        if target not in STATUS_TRANSITIONS.get(current, ()):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot change a {current} listing to {target}"
            )

    @staticmethod
    async def get_listing(db: AsyncSession, listing_id: str) -> Listing:
        listing_uuid = as_uuid(listing_id)
        if listing_uuid is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Listing not found"
            )

        result = await db.execute(
            select(Listing)
            .options(selectinload(Listing.vendor))
            .where(Listing.id == listing_uuid)
        )
        listing = result.scalar_one_or_none()

        if not listing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Listing not found"
            )

        return listing

    async def get_owned_listing(self, db: AsyncSession, listing_id: str, user_id: str) -> Listing:
        listing = await self.get_listing(db, listing_id)
        if not listing.vendor or str(listing.vendor.user_id) != str(user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the vendor who posted this listing can change it"
            )
        return listing

    @staticmethod
    async def status_counts(db: AsyncSession, vendor_id) -> Dict[str, int]:
        result = await db.execute(
            select(Listing.status, func.count(Listing.id))
            .where(Listing.vendor_id == vendor_id)
            .group_by(Listing.status)
        )
        counts = {value: 0 for value in LISTING_STATUSES}
        for listing_status, count in result.all():
            counts[listing_status] = count
        return counts

    @staticmethod
    def contact_message(listing: Listing) -> str:
        return f"{WHATSAPP_DEFAULT_MESSAGE} I'm interested in \"{listing.title}\"."

    def listing_whatsapp_url(self, listing: Listing) -> Optional[str]:
        vendor = listing.vendor
        if not vendor:
            return None
        return whatsapp_link(vendor.whatsapp or vendor.phone, self.contact_message(listing))


listing_helpers = ListingHelpers()
