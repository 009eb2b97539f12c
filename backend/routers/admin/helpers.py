from fastapi import HTTPException, status
from sqlalchemy import select, func, and_, not_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from models import Vendor, Rider, StudyMaterial, StudyCourse, VENDOR_TYPES
from utils.query_engine import Facet, ListQueryConfig, ListQueryEngine
from utils.response_helpers import as_uuid
from routers.vendors.helpers import VENDOR_SORTS, vendor_helpers
from routers.delivery.helpers import AVAILABILITY
from typing import Any, Dict, List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

VENDOR_TABS = {
    "requests": lambda: and_(Vendor.verification_requested.is_(True), not_(Vendor.is_verified)),
    "pending": lambda: not_(Vendor.is_verified),
    "verified": lambda: Vendor.is_verified,
    "all": lambda: None,
}

MATERIAL_TABS = {
    "pending": lambda: StudyMaterial.approved.is_(False),
    "approved": lambda: StudyMaterial.approved.is_(True),
    "all": lambda: None,
}

RIDER_TABS = {
    "pending": lambda: Rider.verified.is_(False),
    "verified": lambda: Rider.verified.is_(True),
    "all": lambda: None,
}

admin_vendor_engine = ListQueryEngine(ListQueryConfig(
    name="vendors",
    model=Vendor,
    path="/admin/vendors",
    search_columns=[Vendor.name, Vendor.location, Vendor.phone],
    sorts={key: VENDOR_SORTS[key] for key in ("newest", "name_asc", "name_desc")},
    page_size=25,
    facets=[
        Facet("tab", lambda value: VENDOR_TABS[value](), choices=tuple(VENDOR_TABS), default="requests"),
        Facet("type", lambda value: Vendor.vendor_type == value, choices=VENDOR_TYPES),
    ],
))

admin_material_engine = ListQueryEngine(ListQueryConfig(
    name="materials",
    model=StudyMaterial,
    path="/admin/materials",
    search_columns=[StudyMaterial.title, StudyCourse.course_code, StudyCourse.course_title],
    sorts={
        "newest": [StudyMaterial.created_at.desc()],
        "oldest": [StudyMaterial.created_at.asc()],
    },
    page_size=25,
    facets=[
        Facet("status", lambda value: MATERIAL_TABS[value](), choices=tuple(MATERIAL_TABS), default="pending"),
    ],
    joins=[(StudyCourse, StudyMaterial.course_id == StudyCourse.id)],
    options=[selectinload(StudyMaterial.course)],
))

admin_rider_engine = ListQueryEngine(ListQueryConfig(
    name="riders",
    model=Rider,
    path="/admin/riders",
    search_columns=[Rider.name, Rider.phone, Rider.whatsapp, Rider.zone],
    sorts={
        "newest": [Rider.created_at.desc()],
        "name_asc": [Rider.name.asc()],
    },
    page_size=25,
    facets=[
        Facet("tab", lambda value: RIDER_TABS[value](), choices=tuple(RIDER_TABS), default="pending"),
        Facet("availability", lambda value: Rider.is_available.is_(AVAILABILITY[value]), choices=tuple(AVAILABILITY)),
    ],
))


class AdminHelpers:
    """Helper functions for moderation operations"""

    @staticmethod
    def parse_ids(raw_ids: Sequence[str]) -> List[Any]:
        ids = []
        for raw in raw_ids:
            value = as_uuid(raw)
            if value is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid id: {raw}"
                )
            if value not in ids:
                ids.append(value)
        return ids

    async def bulk_verification(self, db: AsyncSession, raw_ids: Sequence[str], target: str,
                                note: Optional[str] = None) -> Dict[str, Any]:
        """
        Apply one verification move to many vendors. Vendors whose current
        state does not allow the move are reported, not failed.
        """
        ids = self.parse_ids(raw_ids)
        result = await db.execute(select(Vendor).where(Vendor.id.in_(ids)))
        vendors = {vendor.id: vendor for vendor in result.scalars().all()}

        updated: List[str] = []
        skipped: List[Dict[str, str]] = []

        for vendor_id in ids:
            vendor = vendors.get(vendor_id)
            if vendor is None:
                skipped.append({"id": str(vendor_id), "reason": "Vendor not found"})
                continue
            try:
                vendor_helpers.apply_verification(vendor, target, actor="admin", note=note)
            except HTTPException as e:
                skipped.append({"id": str(vendor_id), "reason": str(e.detail)})
                continue
            updated.append(str(vendor_id))

        return {"updated": updated, "skipped": skipped}

    @staticmethod
    async def get_material(db: AsyncSession, material_id: str) -> StudyMaterial:
        material_uuid = as_uuid(material_id)
        material = None
        if material_uuid is not None:
            result = await db.execute(select(StudyMaterial).where(StudyMaterial.id == material_uuid))
            material = result.scalar_one_or_none()

        if not material:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Material not found"
            )

        return material

    @staticmethod
    async def approve_materials(db: AsyncSession, ids: Sequence[Any], verified: Optional[bool] = None,
                                featured: Optional[bool] = None) -> List[StudyMaterial]:
        result = await db.execute(select(StudyMaterial).where(StudyMaterial.id.in_(ids)))
        materials = list(result.scalars().all())
        for material in materials:
            material.approved = True
            if verified is not None:
                material.verified = verified
            if featured is not None:
                material.featured = featured
        return materials

    @staticmethod
    async def update_riders(db: AsyncSession, ids: Sequence[Any], verified: Optional[bool] = None,
                            is_available: Optional[bool] = None) -> List[Rider]:
        result = await db.execute(select(Rider).where(Rider.id.in_(ids)))
        riders = list(result.scalars().all())
        for rider in riders:
            if verified is not None:
                rider.verified = verified
            if is_available is not None:
                rider.is_available = is_available
        return riders

    @staticmethod
    async def summary(db: AsyncSession) -> Dict[str, int]:
        """Queue sizes for the moderation dashboard"""
        counts = {
            "vendors_pending": (Vendor, VENDOR_TABS["requests"]()),
            "vendors_all": (Vendor, None),
            "riders_pending": (Rider, RIDER_TABS["pending"]()),
            "riders_all": (Rider, None),
            "materials_pending": (StudyMaterial, MATERIAL_TABS["pending"]()),
            "materials_all": (StudyMaterial, None),
        }

        summary = {}
        for key, (model, predicate) in counts.items():
            stmt = select(func.count()).select_from(model)
            if predicate is not None:
                stmt = stmt.where(predicate)
            summary[key] = (await db.execute(stmt)).scalar_one()
        return summary


admin_helpers = AdminHelpers()
