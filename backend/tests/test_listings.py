import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from config import get_db
from conftest import auth_headers, make_listing
from main import app
from models import Listing, Vendor
from routers.listings.helpers import listing_helpers
from utils.errors import ValidationFailure


class TestPriceParsing:
    """Test that prices are accepted as numbers or numeric text"""

    @pytest.mark.parametrize("raw,expected", [
        (None, None),
        ("", None),
        ("   ", None),
        (2500, 2500),
        ("2,500", 2500),
        (" 1200 ", 1200),
        (99.9, 99),
        ("0", 0),
    ])
    def test_valid_prices(self, raw, expected):
        assert listing_helpers.parse_price(raw) == expected

    @pytest.mark.parametrize("raw", ["cheap", "nan", "inf", True])
    def test_non_numeric_prices(self, raw):
        with pytest.raises(ValidationFailure) as exc_info:
            listing_helpers.parse_price(raw)
        assert exc_info.value.field == "price"
        assert exc_info.value.message == "Price must be a number."

    def test_negative_price(self):
        with pytest.raises(ValidationFailure) as exc_info:
            listing_helpers.parse_price("-5")
        assert exc_info.value.message == "Price cannot be negative."


class TestListingValidation:
    """Test form validation before a listing is written"""

    def test_title_required(self):
        with pytest.raises(ValidationFailure) as exc_info:
            listing_helpers.validate_listing_input({"title": "   ", "category": "Phones"})
        assert exc_info.value.field == "title"

    def test_category_must_be_known(self):
        with pytest.raises(ValidationFailure) as exc_info:
            listing_helpers.validate_listing_input({"title": "Tecno Spark", "category": "Rockets"})
        assert exc_info.value.message == "Pick a category from the list."

    def test_price_and_label_are_exclusive(self):
        with pytest.raises(ValidationFailure) as exc_info:
            listing_helpers.validate_listing_input({
                "title": "Haircut",
                "listing_type": "service",
                "category": "Services",
                "price": 1500,
                "price_label": "From 1500",
            })
        assert exc_info.value.field == "price_label"

    def test_partial_only_touches_given_fields(self):
        values = listing_helpers.validate_listing_input({"price": "3000"}, partial=True)
        assert values == {"price": 3000}

    def test_edit_cannot_leave_stale_label(self):
        listing = Listing(title="Braids", category="Beauty", price=None, price_label="DM for price")
        with pytest.raises(ValidationFailure):
            listing_helpers.check_price_exclusive(listing, {"price": 4000})
        listing_helpers.check_price_exclusive(listing, {"price": 4000, "price_label": None})


class TestExplore:
    """Test the public listings feed"""

    async def test_defaults_to_active_only(self, client, db, vendor):
        db.add_all([
            make_listing(vendor, 1),
            make_listing(vendor, 2),
            make_listing(vendor, 3),
            make_listing(vendor, 4, status="sold"),
            make_listing(vendor, 5, status="inactive"),
        ])
        await db.commit()

        response = await client.get("/listings/")
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 3
        assert [item["title"] for item in data["listings"]] == ["Listing 3", "Listing 2", "Listing 1"]
        assert data["listings"][0]["vendor_name"] == "Mama Tee Kitchen"
        assert data["listings"][0]["vendor_verified"] is True
        assert data["filters"]["status"] == "active"
        assert data["links"]["current"] == "/listings"

    async def test_invalid_values_fall_back(self, client, db, vendor):
        db.add(make_listing(vendor, 1))
        await db.commit()

        response = await client.get("/listings/", params={"page": "abc", "sort": "random", "type": "car"})
        assert response.status_code == 200

        data = response.json()
        assert data["page"] == 1
        assert data["filters"]["sort"] == "newest"
        assert data["filters"]["type"] is None
        assert data["active_filters"] == 0

    async def test_page_envelope(self, client, db, vendor):
        db.add_all([make_listing(vendor, minute, category="Laptops") for minute in range(14)])
        await db.commit()

        response = await client.get("/listings/", params={"category": "Laptops", "page": "2"})
        data = response.json()

        assert len(data["listings"]) == 2
        assert data["total"] == 14
        assert data["total_pages"] == 2
        assert data["range_start"] == 13
        assert data["range_end"] == 14
        assert data["has_more"] is False
        assert data["filters_key"] == "category=Laptops"
        assert data["links"]["prev"] == "/listings?category=Laptops"
        assert data["links"]["next"] is None

    async def test_no_matches_is_not_an_error(self, client, db, vendor):
        db.add(make_listing(vendor, 1, title="Casio calculator"))
        await db.commit()

        response = await client.get("/listings/", params={"q": "playstation", "type": "service"})
        assert response.status_code == 200
        assert response.json()["total"] == 0
        assert response.json()["listings"] == []

    async def test_database_failure_shows_banner(self, client):
        async def broken_db():
            session = MagicMock()
            session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection lost")))
            yield session

        app.dependency_overrides[get_db] = broken_db

        response = await client.get("/listings/", params={"q": "calculator", "type": "product"})
        assert response.status_code == 503
        assert response.json()["detail"] == {
            "message": "Could not load listings.",
            "retry": True,
            "clear_filters_href": "/listings",
        }


class TestListingDetail:
    """Test the listing detail page"""

    async def test_detail_includes_whatsapp_link(self, client, db, vendor):
        listing = make_listing(vendor, 1, title="Hot jollof")
        db.add(listing)
        await db.commit()

        response = await client.get(f"/listings/{listing.id}")
        assert response.status_code == 200

        data = response.json()
        assert data["whatsapp_url"].startswith("https://wa.me/2348031234567?text=")
        assert "Hot%20jollof" in data["whatsapp_url"]
        assert data["vendor"]["is_verified"] is True
        assert data["is_owner"] is False

    async def test_sold_listing_hidden_from_strangers(self, client, db, vendor, user_id, other_user_id):
        listing = make_listing(vendor, 1, status="sold")
        db.add(listing)
        await db.commit()

        response = await client.get(f"/listings/{listing.id}", headers=auth_headers(other_user_id))
        assert response.status_code == 404

        response = await client.get(f"/listings/{listing.id}", headers=auth_headers(user_id))
        assert response.status_code == 200
        assert response.json()["is_owner"] is True

    async def test_malformed_id(self, client):
        response = await client.get("/listings/not-a-uuid")
        assert response.status_code == 404


class TestListingWrites:
    """Test creating and changing listings"""

    async def test_create_listing(self, client, vendor, user_id):
        response = await client.post(
            "/listings/",
            json={"title": "  Infinix Hot 30  ", "category": "Phones", "price": "85,000"},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 201

        data = response.json()
        assert data["title"] == "Infinix Hot 30"
        assert data["price"] == 85000
        assert data["status"] == "active"
        assert data["vendor_id"] == str(vendor.id)

    async def test_create_requires_vendor_profile(self, client, other_user_id):
        response = await client.post(
            "/listings/",
            json={"title": "Desk", "category": "Others"},
            headers=auth_headers(other_user_id),
        )
        assert response.status_code == 403

    async def test_create_requires_whatsapp(self, client, db):
        owner = uuid.uuid4()
        db.add(Vendor(user_id=owner, name="No Phone Stores", vendor_type="mall"))
        await db.commit()

        response = await client.post(
            "/listings/",
            json={"title": "Desk", "category": "Others"},
            headers=auth_headers(str(owner)),
        )
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "whatsapp"

    async def test_create_validation_error_shape(self, client, vendor, user_id):
        response = await client.post(
            "/listings/",
            json={"title": "Desk", "category": "Others", "price": "-10"},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 422
        assert response.json()["detail"] == {"field": "price", "message": "Price cannot be negative."}

    async def test_create_requires_auth(self, client):
        response = await client.post("/listings/", json={"title": "Desk", "category": "Others"})
        assert response.status_code in (401, 403)

    async def test_status_transitions(self, client, db, vendor, user_id):
        listing = make_listing(vendor, 1)
        db.add(listing)
        await db.commit()
        headers = auth_headers(user_id)

        response = await client.patch(f"/listings/{listing.id}/status", json={"status": "sold"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "sold"

        response = await client.patch(f"/listings/{listing.id}/status", json={"status": "inactive"}, headers=headers)
        assert response.status_code == 409

        response = await client.patch(f"/listings/{listing.id}/status", json={"status": "active"}, headers=headers)
        assert response.status_code == 200

        response = await client.patch(f"/listings/{listing.id}/status", json={"status": "deleted"}, headers=headers)
        assert response.status_code == 422

    async def test_only_owner_can_edit(self, client, db, vendor, other_user_id):
        listing = make_listing(vendor, 1)
        db.add(listing)
        await db.commit()

        response = await client.patch(
            f"/listings/{listing.id}", json={"title": "Mine now"}, headers=auth_headers(other_user_id)
        )
        assert response.status_code == 403

        response = await client.delete(f"/listings/{listing.id}", headers=auth_headers(other_user_id))
        assert response.status_code == 403

    async def test_edit_and_delete(self, client, db, vendor, user_id):
        listing = make_listing(vendor, 1, price_label="Call me")
        db.add(listing)
        await db.commit()
        headers = auth_headers(user_id)

        response = await client.patch(f"/listings/{listing.id}", json={"price": 5000}, headers=headers)
        assert response.status_code == 422

        response = await client.patch(
            f"/listings/{listing.id}", json={"price": 5000, "price_label": None}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["price"] == 5000
        assert response.json()["price_label"] is None

        response = await client.delete(f"/listings/{listing.id}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Listing deleted successfully"}

        response = await client.get(f"/listings/{listing.id}")
        assert response.status_code == 404


class TestMyListings:
    """Test the owner's dashboard tabs"""

    async def test_tabs_and_counts(self, client, db, vendor, user_id):
        db.add_all([
            make_listing(vendor, 1),
            make_listing(vendor, 2),
            make_listing(vendor, 3, status="sold"),
        ])
        await db.commit()

        response = await client.get("/listings/mine", params={"status": "sold"}, headers=auth_headers(user_id))
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 1
        assert data["counts"] == {"active": 2, "sold": 1, "inactive": 0}
        assert data["links"]["current"] == "/listings/mine?status=sold"

    async def test_no_vendor_profile(self, client, other_user_id):
        response = await client.get("/listings/mine", headers=auth_headers(other_user_id))
        assert response.status_code == 404
