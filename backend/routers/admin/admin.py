from fastapi import APIRouter, Depends, HTTPException, status, Query
from dependencies.rbac import (
    require_vendor_moderation, require_vendor_moderation_write,
    require_material_moderation, require_material_moderation_write,
    require_rider_moderation, require_rider_moderation_write, require_admin
)
from routers.auth.auth import get_current_user
from routers.vendors.schemas import VendorProfileResponse
from routers.vendors.vendors import vendor_to_response
from routers.vendors.helpers import vendor_helpers
from routers.materials.schemas import MaterialResponse
from routers.materials.materials import material_to_response
from routers.admin.schemas import (
    VerificationUpdate, BulkVerificationUpdate, BulkVerificationResponse, SkippedItem,
    AdminVendorListResponse, MaterialApprove, BulkMaterialApprove,
    BulkMaterialApproveResponse, AdminMaterialListResponse, AdminRiderListResponse,
    BulkRiderUpdate, BulkRiderUpdateResponse, ModerationSummary
)
from routers.admin.helpers import admin_helpers, admin_vendor_engine, admin_material_engine, admin_rider_engine
from routers.delivery.delivery import rider_to_response
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from utils.errors import QueryFailure, ValidationFailure, query_failure_exception, validation_failure_exception
from utils.response_helpers import page_fields
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/summary", response_model=ModerationSummary)
async def get_moderation_summary(
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_admin)
):
    """
    Admin only: Pending and total counts for each moderation queue
    """
    try:
        return ModerationSummary(**await admin_helpers.summary(db))

    except Exception as e:
        logger.error(f"Moderation summary failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load moderation summary"
        )


# =================
# VENDOR VERIFICATION
# =================

@router.get("/vendors", response_model=AdminVendorListResponse)
async def list_vendors_for_review(
    tab: Optional[str] = Query(None, description="requests | pending | verified | all"),
    q: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="newest | name_asc | name_desc"),
    page: Optional[str] = Query(None),
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_vendor_moderation)
):
    """
    Admin only: Vendors by moderation tab. Defaults to open verification requests.
    """
    try:
        result = await admin_vendor_engine.fetch(db, {"tab": tab, "q": q, "type": type, "sort": sort, "page": page})

        return AdminVendorListResponse(
            vendors=[vendor_to_response(VendorProfileResponse, vendor) for vendor in result.rows],
            **page_fields(admin_vendor_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, admin_vendor_engine.config.path)
    except Exception as e:
        logger.error(f"List vendors for review failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve vendors"
        )


@router.patch("/vendors/{vendor_id}/verification", response_model=VendorProfileResponse)
async def update_vendor_verification(
    vendor_id: str,
    update_data: VerificationUpdate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_vendor_moderation_write)
):
    """
    Admin only: Move one vendor through the verification workflow
    """
    try:
        vendor = await vendor_helpers.get_vendor(db, vendor_id)
        previous = vendor_helpers.apply_verification(vendor, update_data.status, actor="admin", note=update_data.note)

        await db.commit()
        await db.refresh(vendor)

        logger.info(f"Admin {current_user.user_id} moved vendor {vendor_id} from {previous} to {update_data.status}")
        return vendor_to_response(VendorProfileResponse, vendor)

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Update vendor verification failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update vendor verification"
        )


@router.post("/vendors/verification/bulk", response_model=BulkVerificationResponse)
async def bulk_update_vendor_verification(
    update_data: BulkVerificationUpdate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_vendor_moderation_write)
):
    """
    Admin only: Same move for several vendors. Vendors that cannot make the move are skipped.
    """
    try:
        outcome = await admin_helpers.bulk_verification(
            db, update_data.vendor_ids, update_data.status, note=update_data.note
        )
        await db.commit()

        logger.info(
            f"Admin {current_user.user_id} bulk verification -> {update_data.status}: "
            f"{len(outcome['updated'])} updated, {len(outcome['skipped'])} skipped"
        )
        return BulkVerificationResponse(
            updated=outcome["updated"],
            skipped=[SkippedItem(**item) for item in outcome["skipped"]],
        )

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Bulk vendor verification failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update vendors"
        )


# =================
# MATERIAL MODERATION
# =================

@router.get("/materials", response_model=AdminMaterialListResponse)
async def list_materials_for_review(
    status_filter: Optional[str] = Query(None, alias="status", description="pending | approved | all"),
    q: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="newest | oldest"),
    page: Optional[str] = Query(None),
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_material_moderation)
):
    """
    Admin only: Uploaded materials, pending approval by default
    """
    try:
        result = await admin_material_engine.fetch(db, {"status": status_filter, "q": q, "sort": sort, "page": page})

        return AdminMaterialListResponse(
            materials=[material_to_response(material) for material in result.rows],
            **page_fields(admin_material_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, admin_material_engine.config.path)
    except Exception as e:
        logger.error(f"List materials for review failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve materials"
        )


@router.post("/materials/approve", response_model=BulkMaterialApproveResponse)
async def bulk_approve_materials(
    approve_data: BulkMaterialApprove,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_material_moderation_write)
):
    """
    Admin only: Approve several materials at once
    """
    try:
        ids = admin_helpers.parse_ids(approve_data.material_ids)
        materials = await admin_helpers.approve_materials(
            db, ids, verified=approve_data.verified, featured=approve_data.featured
        )
        await db.commit()

        approved = [str(material.id) for material in materials]
        missing = [str(material_id) for material_id in ids if str(material_id) not in approved]

        logger.info(f"Admin {current_user.user_id} approved {len(approved)} materials")
        return BulkMaterialApproveResponse(approved=approved, missing=missing)

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Bulk approve materials failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to approve materials"
        )


@router.post("/materials/{material_id}/approve", response_model=MaterialResponse)
async def approve_material(
    material_id: str,
    approve_data: MaterialApprove,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_material_moderation_write)
):
    """
    Admin only: Publish an uploaded material
    """
    try:
        material = await admin_helpers.get_material(db, material_id)
        await admin_helpers.approve_materials(
            db, [material.id], verified=approve_data.verified, featured=approve_data.featured
        )

        await db.commit()
        await db.refresh(material)

        logger.info(f"Admin {current_user.user_id} approved material {material_id}")
        return material_to_response(material)

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Approve material failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to approve material"
        )


@router.delete("/materials/{material_id}")
async def reject_material(
    material_id: str,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_material_moderation_write)
):
    """
    Admin only: Reject an upload. The record is removed.
    """
    try:
        material = await admin_helpers.get_material(db, material_id)

        file_path = material.file_path
        await db.delete(material)
        await db.commit()

        logger.info(f"Admin {current_user.user_id} rejected material {material_id} (file: {file_path})")
        return {"message": "Material rejected successfully"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Reject material failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reject material"
        )


# =================
# RIDER VERIFICATION
# =================

@router.get("/riders", response_model=AdminRiderListResponse)
async def list_riders_for_review(
    tab: Optional[str] = Query(None, description="pending | verified | all"),
    availability: Optional[str] = Query(None, description="available | busy | all"),
    q: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="newest | name_asc"),
    page: Optional[str] = Query(None),
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_rider_moderation)
):
    """
    Admin only: Rider applications, unverified first by default
    """
    try:
        result = await admin_rider_engine.fetch(
            db, {"tab": tab, "availability": availability, "q": q, "sort": sort, "page": page}
        )

        return AdminRiderListResponse(
            riders=[rider_to_response(rider) for rider in result.rows],
            **page_fields(admin_rider_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, admin_rider_engine.config.path)
    except Exception as e:
        logger.error(f"List riders for review failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve riders"
        )


@router.patch("/riders/bulk", response_model=BulkRiderUpdateResponse)
async def bulk_update_riders(
    update_data: BulkRiderUpdate,
    current_user = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(require_rider_moderation_write)
):
    """
    Admin only: Verify, unverify or toggle availability for several riders
    """
    try:
        if update_data.verified is None and update_data.is_available is None:
            raise ValidationFailure("verified", "Choose what to change.")

        ids = admin_helpers.parse_ids(update_data.rider_ids)
        riders = await admin_helpers.update_riders(
            db, ids, verified=update_data.verified, is_available=update_data.is_available
        )
        await db.commit()

        updated = [str(rider.id) for rider in riders]
        missing = [str(rider_id) for rider_id in ids if str(rider_id) not in updated]

        logger.info(f"Admin {current_user.user_id} updated {len(updated)} riders")
        return BulkRiderUpdateResponse(updated=updated, missing=missing)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Bulk rider update failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update riders"
        )
