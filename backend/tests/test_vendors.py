import uuid

import pytest
from fastapi import HTTPException

from conftest import at, auth_headers, make_listing
from models import Vendor
from routers.vendors.helpers import call_link, normalize_phone, vendor_helpers, whatsapp_link
from utils.errors import ValidationFailure


def make_vendor(minutes: int, **overrides) -> Vendor:
    values = {
        "user_id": uuid.uuid4(),
        "name": f"Vendor {minutes}",
        "vendor_type": "student",
        "created_at": at(minutes),
        "updated_at": at(minutes),
    }
    values.update(overrides)
    return Vendor(**values)


class TestContactLinks:
    """Test WhatsApp and call links built from stored numbers"""

    def test_normalize_phone(self):
        assert normalize_phone("+234 (803) 123-4567") == "2348031234567"
        assert normalize_phone(None) == ""

    def test_whatsapp_link_encodes_message(self):
        link = whatsapp_link("+234 803 123 4567", "Hi & hello?")
        assert link == "https://wa.me/2348031234567?text=Hi%20%26%20hello%3F"

    def test_whatsapp_link_without_digits(self):
        assert whatsapp_link("call me") is None
        assert whatsapp_link("") is None

    def test_call_link(self):
        assert call_link("0803-123-4567") == "tel:08031234567"
        assert call_link(None) is None


class TestVerificationTransitions:
    """Test who may move a vendor between verification states"""

    @pytest.mark.parametrize("current,target,actor,allowed", [
        ("unverified", "requested", "vendor", True),
        ("unverified", "verified", "vendor", False),
        ("unverified", "verified", "admin", False),
        ("requested", "verified", "admin", True),
        ("requested", "under_review", "admin", True),
        ("requested", "verified", "vendor", False),
        ("under_review", "rejected", "admin", True),
        ("rejected", "requested", "vendor", True),
        ("verified", "suspended", "admin", True),
        ("suspended", "verified", "admin", True),
        ("verified", "unverified", "admin", True),
        ("unverified", "unverified", "admin", False),
        ("verified", "banned", "admin", False),
    ])
    def test_transition_table(self, current, target, actor, allowed):
        assert vendor_helpers.can_transition(current, target, actor) is allowed

    def test_apply_keeps_legacy_flag_in_step(self):
        vendor = Vendor(verification_status="requested", verified=False, verification_requested=True)
        previous = vendor_helpers.apply_verification(vendor, "verified", actor="admin", note="  ID checked ")

        assert previous == "requested"
        assert vendor.verified is True
        assert vendor.verification_requested is False
        assert vendor.verification_note == "ID checked"

    def test_legacy_verified_row_counts_as_verified(self):
        vendor = Vendor(verification_status="unverified", verified=True, verification_requested=False)
        assert vendor.is_verified is True

        previous = vendor_helpers.apply_verification(vendor, "suspended", actor="admin")
        assert previous == "verified"
        assert vendor.verified is False
        assert vendor.is_verified is False

    def test_invalid_move_conflicts(self):
        vendor = Vendor(verification_status="unverified", verified=False, verification_requested=False)
        with pytest.raises(HTTPException) as exc_info:
            vendor_helpers.apply_verification(vendor, "verified", actor="admin")
        assert exc_info.value.status_code == 409


class TestProfileValidation:
    """Test vendor profile form checks"""

    def test_short_phone_rejected(self):
        with pytest.raises(ValidationFailure) as exc_info:
            vendor_helpers.validate_profile({"whatsapp": "12-34"})
        assert exc_info.value.field == "whatsapp"

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationFailure) as exc_info:
            vendor_helpers.validate_profile({"vendor_type": "bank"})
        assert exc_info.value.field == "vendor_type"

    def test_blank_values_cleared(self):
        assert vendor_helpers.validate_profile({"phone": "  ", "location": ""}) == {"phone": None, "location": None}


class TestDirectory:
    """Test the public vendors directory"""

    async def test_only_verified_vendors_listed(self, client, db):
        db.add_all([
            make_vendor(1, name="Verified by status", verification_status="verified"),
            make_vendor(2, name="Verified by legacy flag", verified=True),
            make_vendor(3, name="Waiting", verification_status="requested", verification_requested=True),
            make_vendor(4, name="Suspended", verification_status="suspended"),
        ])
        await db.commit()

        response = await client.get("/vendors/")
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 2
        assert [vendor["name"] for vendor in data["vendors"]] == ["Verified by legacy flag", "Verified by status"]
        assert all(vendor["is_verified"] for vendor in data["vendors"])

    async def test_type_filter_and_search(self, client, db):
        db.add_all([
            make_vendor(1, name="Campus Mall", vendor_type="mall", location="Gate", verified=True),
            make_vendor(2, name="Suya Spot", vendor_type="food", location="Hostel road", verified=True),
            make_vendor(3, name="Print Hub", vendor_type="student", location="Hostel road", verified=True),
        ])
        await db.commit()

        response = await client.get("/vendors/", params={"q": "hostel", "type": "food"})
        data = response.json()
        assert [vendor["name"] for vendor in data["vendors"]] == ["Suya Spot"]
        assert data["filters_key"] == "q=hostel|type=food"

        response = await client.get("/vendors/", params={"sort": "name_asc"})
        assert [vendor["name"] for vendor in response.json()["vendors"]] == ["Campus Mall", "Print Hub", "Suya Spot"]


class TestVendorPage:
    """Test a vendor's public page"""

    async def test_shows_active_listings_only(self, client, db, vendor):
        db.add_all([
            make_listing(vendor, 1, title="Fried rice"),
            make_listing(vendor, 2, title="Old menu", status="inactive"),
        ])
        await db.commit()

        response = await client.get(f"/vendors/{vendor.id}")
        assert response.status_code == 200

        data = response.json()
        assert data["vendor"]["whatsapp_url"].startswith("https://wa.me/2348031234567")
        assert data["vendor"]["call_url"] == "tel:08031234567"
        assert [listing["title"] for listing in data["listings"]["listings"]] == ["Fried rice"]
        assert data["listings"]["links"]["clear"] == f"/vendors/{vendor.id}"

    async def test_unverified_vendor_hidden_except_from_owner(self, client, db):
        owner = uuid.uuid4()
        pending = make_vendor(1, user_id=owner, verification_status="requested")
        db.add(pending)
        await db.commit()

        response = await client.get(f"/vendors/{pending.id}")
        assert response.status_code == 404

        response = await client.get(f"/vendors/{pending.id}", headers=auth_headers(str(owner)))
        assert response.status_code == 200

    async def test_unknown_vendor(self, client):
        response = await client.get(f"/vendors/{uuid.uuid4()}")
        assert response.status_code == 404


class TestOwnProfile:
    """Test creating a profile and asking for verification"""

    async def test_create_then_update(self, client, other_user_id):
        headers = auth_headers(other_user_id)

        response = await client.get("/vendors/me", headers=headers)
        assert response.status_code == 404

        response = await client.put("/vendors/me", json={"whatsapp": "08031234567"}, headers=headers)
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "name"

        response = await client.put(
            "/vendors/me",
            json={"name": " Tola Prints ", "whatsapp": "08031234567", "vendor_type": "student"},
            headers=headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Tola Prints"
        assert data["verification_status"] == "unverified"
        assert data["user_id"] == other_user_id

        response = await client.put("/vendors/me", json={"location": "Block C"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Tola Prints"
        assert response.json()["location"] == "Block C"

    async def test_request_verification(self, client, db):
        owner = uuid.uuid4()
        db.add(make_vendor(1, user_id=owner))
        await db.commit()
        headers = auth_headers(str(owner))

        response = await client.post("/vendors/me/request-verification", json={"note": "CAC attached"}, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["verification_status"] == "requested"
        assert data["verification_requested"] is True
        assert data["verification_note"] == "CAC attached"

        response = await client.post("/vendors/me/request-verification", json={}, headers=headers)
        assert response.status_code == 409
