from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from conftest import make_listing
from models import Listing
from routers.listings.helpers import explore_engine
from routers.materials.helpers import material_engine
from utils.errors import QueryFailure
from utils.query_engine import (
    ListParams, QueryPage, escape_like, merge_rows, normalize_query, parse_page, build_href, sort_keys
)


class TestNormalization:
    """Test raw query-string values are normalized permissively"""

    def test_query_is_trimmed_and_collapsed(self):
        assert normalize_query("  red   iphone \t 12 ") == "red iphone 12"
        assert normalize_query(None) == ""

    def test_like_metacharacters_are_escaped(self):
        assert escape_like("50% off") == "50\\% off"
        assert escape_like("a_b") == "a\\_b"
        assert escape_like("c:\\path") == "c:\\\\path"

    @pytest.mark.parametrize("raw,expected", [
        ("3", 3),
        ("0", 1),
        ("-4", 1),
        ("abc", 1),
        ("", 1),
        (None, 1),
        ("1000", 999),
    ])
    def test_page_parsing(self, raw, expected):
        assert parse_page(raw) == expected

    def test_unknown_sort_falls_back_to_newest(self):
        params = explore_engine.parse({"sort": "cheapest"})
        assert params.sort == "newest"

    def test_legacy_sort_aliases(self):
        assert explore_engine.parse({"sort": "price_low"}).sort == "price_asc"
        assert explore_engine.parse({"sort": "price_high"}).sort == "price_desc"

    def test_unknown_facet_values_resolve_to_default(self):
        params = explore_engine.parse({"type": "vehicle", "category": "phones", "status": "deleted"})
        assert params.filters == {"status": "active", "type": None, "category": None}

    def test_all_sentinel_means_no_filter(self):
        params = explore_engine.parse({"type": "all", "category": "all"})
        assert params.filters["type"] is None
        assert params.filters["category"] is None

    def test_status_all_is_an_explicit_widening(self):
        assert explore_engine.parse({"status": "all"}).filters["status"] == "all"


class TestUrlSurface:
    """Test that defaults never appear in generated links"""

    def test_canonical_params_drop_defaults(self):
        params = explore_engine.parse({"q": " shoe ", "status": "active", "sort": "newest", "page": "1"})
        assert explore_engine.canonical_params(params) == {"q": "shoe"}

    def test_filters_key_ignores_page(self):
        first = explore_engine.parse({"q": "shoe", "type": "product", "page": "1"})
        second = explore_engine.parse({"q": "shoe", "type": "product", "page": "4"})
        assert explore_engine.filters_key(first) == explore_engine.filters_key(second)
        assert explore_engine.filters_key(first) == "q=shoe|type=product"

    def test_active_filters_count(self):
        params = explore_engine.parse({"q": "bag", "category": "Fashion", "sort": "price_asc"})
        assert explore_engine.active_filters(params) == 3

    def test_links(self):
        params = explore_engine.parse({"q": "bag", "page": "2"})
        page = QueryPage(rows=[], total=30, page=2, page_size=12, params=params)
        links = explore_engine.links(page)
        assert links["current"] == "/listings?q=bag&page=2"
        assert links["prev"] == "/listings?q=bag"
        assert links["next"] == "/listings?q=bag&page=3"
        assert links["clear"] == "/listings"

    def test_build_href_without_params(self):
        assert build_href("/vendors", {}) == "/vendors"


class TestPageMath:
    """Test display ranges and page counts"""

    def test_empty_result(self):
        page = QueryPage(rows=[], total=0, page=1, page_size=12, params=ListParams())
        assert page.total_pages == 1
        assert page.range_start == 0
        assert page.range_end == 0
        assert page.has_more is False

    def test_partial_last_page(self):
        page = QueryPage(rows=[], total=25, page=3, page_size=12, params=ListParams(page=3))
        assert page.total_pages == 3
        assert page.range_start == 25
        assert page.range_end == 25
        assert page.has_more is False

    def test_middle_page(self):
        page = QueryPage(rows=[], total=25, page=2, page_size=12, params=ListParams(page=2))
        assert (page.range_start, page.range_end) == (13, 24)
        assert page.has_more is True
        assert page.has_prev is True


class TestOrdering:
    """Test ORDER BY construction and tie-breaks"""

    def test_non_default_sort_adds_newest_then_id(self):
        assert sort_keys(explore_engine.order_by("price_asc")) == ["price", "created_at", "id"]

    def test_default_sort_only_adds_id(self):
        assert sort_keys(explore_engine.order_by("newest")) == ["created_at", "id"]

    def test_creation_time_sort_is_not_repeated(self):
        assert sort_keys(material_engine.order_by("oldest")) == ["created_at", "id"]
        assert sort_keys(material_engine.order_by("downloads_desc")) == ["downloads", "created_at", "id"]


class TestMergeRows:
    """Test load-more appends never duplicate ids"""

    def test_dedupes_by_id_keeping_first(self):
        first = [{"id": "a", "v": 1}, {"id": "b", "v": 1}]
        second = [{"id": "b", "v": 2}, {"id": "c", "v": 2}]
        merged = merge_rows(first, second)
        assert [row["id"] for row in merged] == ["a", "b", "c"]
        assert merged[1]["v"] == 1

    def test_works_on_objects(self):
        class Row:
            def __init__(self, id):
                self.id = id

        merged = merge_rows([Row(1), Row(2)], [Row(2), Row(3), Row(1)])
        assert [row.id for row in merged] == [1, 2, 3]


class TestFetch:
    """Test the engine against a real database"""

    async def test_default_status_shows_only_active(self, db, vendor):
        db.add_all([
            make_listing(vendor, 1),
            make_listing(vendor, 2),
            make_listing(vendor, 3),
            make_listing(vendor, 4, status="sold"),
            make_listing(vendor, 5, status="inactive"),
        ])
        await db.commit()

        page = await explore_engine.fetch(db, {})
        assert page.total == 3
        assert {row.status for row in page.rows} == {"active"}

        widened = await explore_engine.fetch(db, {"status": "active_sold"})
        assert widened.total == 4

        everything = await explore_engine.fetch(db, {"status": "all"})
        assert everything.total == 5

    async def test_search_escapes_wildcards(self, db, vendor):
        db.add_all([
            make_listing(vendor, 1, title="Shoes 50% off"),
            make_listing(vendor, 2, title="50 chairs, office use"),
            make_listing(vendor, 3, title="Plain bag", description="Now 50% OFF today"),
        ])
        await db.commit()

        page = await explore_engine.fetch(db, {"q": "50% off"})
        assert sorted(row.title for row in page.rows) == ["Plain bag", "Shoes 50% off"]

    async def test_search_is_disjunctive_across_columns(self, db, vendor):
        db.add_all([
            make_listing(vendor, 1, title="Bucket", location="Hall B"),
            make_listing(vendor, 2, title="Hall B fan"),
            make_listing(vendor, 3, title="Kettle", description="Pick up at hall b"),
            make_listing(vendor, 4, title="Kettle 2", location="Gate"),
        ])
        await db.commit()

        page = await explore_engine.fetch(db, {"q": "hall b"})
        assert page.total == 3

    async def test_price_sort_ties_break_by_newest(self, db, vendor):
        db.add_all([
            make_listing(vendor, 1, title="old", price=1000),
            make_listing(vendor, 3, title="new", price=1000),
            make_listing(vendor, 2, title="mid", price=1000),
            make_listing(vendor, 4, title="cheap", price=500),
            make_listing(vendor, 5, title="no price", price_label="Contact me"),
        ])
        await db.commit()

        first = await explore_engine.fetch(db, {"sort": "price_asc"})
        second = await explore_engine.fetch(db, {"sort": "price_asc"})
        titles = [row.title for row in first.rows]
        assert titles == ["cheap", "new", "mid", "old", "no price"]
        assert titles == [row.title for row in second.rows]

    async def test_total_is_invariant_across_pages(self, db, vendor):
        db.add_all([make_listing(vendor, minute) for minute in range(30)])
        await db.commit()

        pages = [await explore_engine.fetch(db, {"page": str(number)}) for number in (1, 2, 3)]
        assert [page.total for page in pages] == [30, 30, 30]
        assert [len(page.rows) for page in pages] == [12, 12, 6]

        ids = [row.id for page in pages for row in page.rows]
        assert len(ids) == len(set(ids)) == 30

    async def test_page_beyond_last_is_empty_with_totals(self, db, vendor):
        db.add_all([make_listing(vendor, minute) for minute in range(5)])
        await db.commit()

        page = await explore_engine.fetch(db, {"page": "9"})
        assert page.rows == []
        assert page.total == 5
        assert page.total_pages == 1
        assert page.page == 9

    async def test_unknown_category_does_not_raise(self, db, vendor):
        db.add(make_listing(vendor, 1))
        await db.commit()

        page = await explore_engine.fetch(db, {"category": "Spaceships"})
        assert page.total == 1

    async def test_database_error_raises_query_failure(self):
        session = MagicMock()
        session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection lost")))

        with pytest.raises(QueryFailure) as exc_info:
            await explore_engine.fetch(session, {})

        assert exc_info.value.entity == "listings"

    async def test_extra_filters_scope_the_query(self, db, vendor):
        db.add_all([make_listing(vendor, 1), make_listing(vendor, 2, vendor_id=None)])
        await db.commit()

        page = await explore_engine.fetch(db, {}, extra_filters=[Listing.vendor_id == vendor.id])
        assert page.total == 1
