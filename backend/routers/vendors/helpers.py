from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from models import Vendor, Listing, VENDOR_TYPES, VERIFICATION_STATUSES
from utils.errors import ValidationFailure
from utils.query_engine import Facet, ListQueryConfig, ListQueryEngine
from utils.response_helpers import as_uuid
from config import WHATSAPP_DEFAULT_MESSAGE
from typing import Any, Dict, Optional
from urllib.parse import quote
import logging

logger = logging.getLogger(__name__)

# status -> {target: who may make the move}
VERIFICATION_TRANSITIONS = {
    "unverified": {"requested": "vendor"},
    "requested": {"under_review": "admin", "verified": "admin", "rejected": "admin"},
    "under_review": {"verified": "admin", "rejected": "admin"},
    "rejected": {"requested": "vendor"},
    "verified": {"suspended": "admin"},
    "suspended": {"verified": "admin"},
}


def normalize_phone(value: Optional[str]) -> str:
    """Digits only, as used in tel: and wa.me links"""
    if not value:
        return ""
    return "".join(ch for ch in value if ch.isdigit())


def whatsapp_link(phone: Optional[str], message: Optional[str] = None) -> Optional[str]:
    digits = normalize_phone(phone)
    if not digits:
        return None
    text = quote(message or WHATSAPP_DEFAULT_MESSAGE, safe="")
    return f"https://wa.me/{digits}?text={text}"


def call_link(phone: Optional[str]) -> Optional[str]:
    digits = normalize_phone(phone)
    return f"tel:{digits}" if digits else None


VENDOR_SORTS = {
    "newest": [Vendor.created_at.desc()],
    "name_asc": [Vendor.name.asc().nulls_last()],
    "name_desc": [Vendor.name.desc().nulls_last()],
    "type": [Vendor.vendor_type.asc(), Vendor.name.asc().nulls_last()],
}

vendor_engine = ListQueryEngine(ListQueryConfig(
    name="vendors",
    model=Vendor,
    path="/vendors",
    search_columns=[Vendor.name, Vendor.location, Vendor.phone],
    sorts=VENDOR_SORTS,
    page_size=18,
    facets=[
        Facet("type", lambda value: Vendor.vendor_type == value, choices=VENDOR_TYPES),
    ],
    base_filters=[Vendor.is_verified],
))

# A vendor's storefront: their active listings only
vendor_listings_sorts = {
    "newest": [Listing.created_at.desc()],
    "price_asc": [Listing.price.asc().nulls_last()],
    "price_desc": [Listing.price.desc().nulls_last()],
}

vendor_listings_engine = ListQueryEngine(ListQueryConfig(
    name="vendor listings",
    model=Listing,
    path="/vendors",
    search_columns=[Listing.title, Listing.description, Listing.location],
    sorts=vendor_listings_sorts,
    sort_aliases={"price_low": "price_asc", "price_high": "price_desc"},
    page_size=24,
    base_filters=[Listing.status == "active"],
))


class VendorHelpers:
    """Helper functions for vendor profile and verification operations"""

    @staticmethod
    def can_transition(current: str, target: str, actor: str) -> bool:
        if target not in VERIFICATION_STATUSES:
            return False
        if actor == "admin" and target == "unverified":
            return current != "unverified"
        allowed = VERIFICATION_TRANSITIONS.get(current, {})
        return allowed.get(target) == actor

    def apply_verification(self, vendor: Vendor, target: str, actor: str, note: Optional[str] = None) -> str:
        """
        Move ``vendor`` to ``target`` and keep the legacy ``verified`` flag in step.
        Returns the previous status. Raises 409 for moves the table does not allow.
        """
        current = vendor.verification_status or "unverified"
        # Rows only ever touched through the legacy flag
        if current == "unverified" and vendor.verified:
            current = "verified"

        if not self.can_transition(current, target, actor):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot move vendor verification from {current} to {target}"
            )

        vendor.verification_status = target
        vendor.verified = target == "verified"
        vendor.verification_requested = target in ("requested", "under_review")
        if note is not None:
            vendor.verification_note = note.strip() or None

        return current

    @staticmethod
    def validate_profile(data: Dict[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}

        if "name" in data:
            name = (data.get("name") or "").strip()
            if not name:
                raise ValidationFailure("name", "Name is required.")
            values["name"] = name

        for key in ("whatsapp", "phone"):
            if key in data:
                raw = (data.get(key) or "").strip()
                if raw and len(normalize_phone(raw)) < 7:
                    raise ValidationFailure(key, "Enter a valid phone number.")
                values[key] = raw or None

        if "location" in data:
            values["location"] = (data.get("location") or "").strip() or None

        if "vendor_type" in data:
            vendor_type = data.get("vendor_type") or "other"
            if vendor_type not in VENDOR_TYPES:
                raise ValidationFailure("vendor_type", f"Type must be one of: {', '.join(VENDOR_TYPES)}.")
            values["vendor_type"] = vendor_type

        return values

    @staticmethod
    async def get_vendor(db: AsyncSession, vendor_id: str) -> Vendor:
        vendor_uuid = as_uuid(vendor_id)
        vendor = None
        if vendor_uuid is not None:
            result = await db.execute(select(Vendor).where(Vendor.id == vendor_uuid))
            vendor = result.scalar_one_or_none()

        if not vendor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Vendor not found"
            )

        return vendor

    @staticmethod
    async def get_vendor_for_user(db: AsyncSession, user_id: str) -> Optional[Vendor]:
        result = await db.execute(select(Vendor).where(Vendor.user_id == as_uuid(user_id)))
        return result.scalar_one_or_none()


vendor_helpers = VendorHelpers()
