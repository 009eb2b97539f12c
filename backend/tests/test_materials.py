import uuid

import pytest
from sqlalchemy import select

from conftest import at, auth_headers
from models import StudyCourse, StudyMaterial
from routers.materials.helpers import material_engine, parse_flag, parse_level, parse_semester, normalize_course_code


@pytest.fixture
async def courses(db):
    csc = StudyCourse(
        faculty="Natural Sciences", department="Computer Science",
        level=200, semester="first", course_code="CSC 201", course_title="Data Structures",
    )
    bch = StudyCourse(
        faculty="Natural Sciences", department="Biochemistry",
        level=100, semester="second", course_code="BCH 102", course_title="General Biochemistry",
    )
    law = StudyCourse(
        faculty="Law", department="Public Law",
        level=300, semester="first", course_code="LAW 301", course_title="Constitutional Law",
    )
    db.add_all([csc, bch, law])
    await db.commit()
    return {"csc": csc, "bch": bch, "law": law}


def make_material(course: StudyCourse, minutes: int, **overrides) -> StudyMaterial:
    values = {
        "course_id": course.id,
        "title": f"Material {minutes}",
        "material_type": "past_question",
        "approved": True,
        "file_url": f"https://files.example.com/{minutes}.pdf",
        "created_at": at(minutes),
    }
    values.update(overrides)
    return StudyMaterial(**values)


class TestMaterialParams:
    """Test material-specific value parsing"""

    @pytest.mark.parametrize("raw,expected", [
        ("1st", "first"),
        ("First", "first"),
        ("2nd", "second"),
        ("summer", "summer"),
        ("third", ""),
    ])
    def test_semester_aliases(self, raw, expected):
        assert parse_semester(raw) == expected

    def test_flags(self):
        assert parse_flag("true") == "1"
        assert parse_flag("YES") == "1"
        assert parse_flag("0") == ""

    def test_course_code_normalized(self):
        assert normalize_course_code(" csc   201 ") == "CSC 201"

    def test_non_numeric_level_ignored(self):
        params = material_engine.parse({"level": "two hundred", "semester": "2nd"})
        assert params.filters["level"] is None
        assert params.filters["semester"] == "second"

    @pytest.mark.parametrize("value,expected", [
        (" 200 ", "200"),
        ("0300", "300"),
        ("²", ""),
        ("9" * 25, ""),
        ("50", ""),
        ("-100", ""),
    ])
    def test_level_parsing(self, value, expected):
        assert parse_level(value) == expected


class TestMaterialList:
    """Test the public materials library"""

    async def test_only_approved_materials(self, client, db, courses):
        db.add_all([
            make_material(courses["csc"], 1, title="CSC 201 2022 exam"),
            make_material(courses["csc"], 2, title="Pending upload", approved=False),
        ])
        await db.commit()

        response = await client.get("/materials/")
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == 1
        assert data["materials"][0]["title"] == "CSC 201 2022 exam"
        assert data["materials"][0]["course"]["course_code"] == "CSC 201"

    async def test_course_facets_filter(self, client, db, courses):
        db.add_all([
            make_material(courses["csc"], 1, title="Linked lists"),
            make_material(courses["bch"], 2, title="Enzymes"),
            make_material(courses["law"], 3, title="Separation of powers"),
        ])
        await db.commit()

        response = await client.get("/materials/", params={"faculty": "Natural Sciences", "level": "200"})
        assert [item["title"] for item in response.json()["materials"]] == ["Linked lists"]

        response = await client.get("/materials/", params={"semester": "2nd"})
        assert [item["title"] for item in response.json()["materials"]] == ["Enzymes"]

        response = await client.get("/materials/", params={"course": "law 301"})
        assert [item["title"] for item in response.json()["materials"]] == ["Separation of powers"]

    async def test_search_reaches_course_fields(self, client, db, courses):
        db.add_all([
            make_material(courses["csc"], 1, title="Week 3 notes", material_type="note"),
            make_material(courses["law"], 2, title="Week 3 notes", material_type="note"),
        ])
        await db.commit()

        response = await client.get("/materials/", params={"q": "data structures"})
        data = response.json()
        assert data["total"] == 1
        assert data["materials"][0]["course_id"] == str(courses["csc"].id)

    async def test_flags_session_and_sort(self, client, db, courses):
        db.add_all([
            make_material(courses["csc"], 1, title="A", session="2022/2023", downloads=40, verified=True),
            make_material(courses["csc"], 2, title="B", session="2023/2024", downloads=10, featured=True),
            make_material(courses["csc"], 3, title="C", session="2023/2024", downloads=25, verified=True),
        ])
        await db.commit()

        response = await client.get("/materials/", params={"verified": "true", "sort": "downloads_desc"})
        assert [item["title"] for item in response.json()["materials"]] == ["A", "C"]

        response = await client.get("/materials/", params={"featured": "1"})
        assert [item["title"] for item in response.json()["materials"]] == ["B"]

        response = await client.get("/materials/", params={"session": "2023/24"})
        assert response.json()["total"] == 0

        response = await client.get("/materials/", params={"session": "2023/2024", "sort": "oldest"})
        assert [item["title"] for item in response.json()["materials"]] == ["B", "C"]

    async def test_course_dropdowns(self, client, courses):
        response = await client.get("/materials/courses", params={"faculty": "Natural Sciences"})
        assert response.status_code == 200

        data = response.json()
        assert data["faculties"] == ["Law", "Natural Sciences"]
        assert data["departments"] == ["Biochemistry", "Computer Science"]
        assert [course["course_code"] for course in data["courses"]] == ["BCH 102", "CSC 201"]

    @pytest.mark.parametrize("level", ["²", "9" * 25])
    async def test_odd_level_values_are_ignored(self, client, db, courses, level):
        db.add(make_material(courses["csc"], 1, title="Linked lists"))
        await db.commit()

        response = await client.get("/materials/", params={"level": level})
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["filters"]["level"] is None

        response = await client.get("/materials/courses", params={"level": level})
        assert response.status_code == 200
        assert len(response.json()["courses"]) == 3


class TestMaterialDetail:
    """Test single material reads and download counting"""

    async def test_pending_material_not_public(self, client, db, courses):
        material = make_material(courses["csc"], 1, approved=False)
        db.add(material)
        await db.commit()

        response = await client.get(f"/materials/{material.id}")
        assert response.status_code == 404

        response = await client.post(f"/materials/{material.id}/download")
        assert response.status_code == 404

    async def test_download_increments_counter(self, client, db, courses):
        material = make_material(courses["csc"], 1, downloads=4)
        db.add(material)
        await db.commit()

        for expected in (5, 6):
            response = await client.post(f"/materials/{material.id}/download")
            assert response.status_code == 200
            assert response.json()["downloads"] == expected
            assert response.json()["file_url"] == "https://files.example.com/1.pdf"

        stored = (await db.execute(
            select(StudyMaterial.downloads).where(StudyMaterial.id == material.id)
        )).scalar_one()
        assert stored == 6


class TestSubmitMaterial:
    """Test uploads waiting for moderation"""

    async def test_submission_is_hidden_until_approved(self, client, courses, user_id):
        response = await client.post(
            "/materials/",
            json={
                "course_id": str(courses["csc"].id),
                "title": "  2023   exam  ",
                "material_type": "past_question",
                "file_path": "materials/csc201/2023.pdf",
            },
            headers=auth_headers(user_id),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "2023 exam"
        assert data["approved"] is False

        response = await client.get("/materials/")
        assert response.json()["total"] == 0

    async def test_unknown_course(self, client, user_id):
        response = await client.post(
            "/materials/",
            json={"course_id": str(uuid.uuid4()), "title": "Notes", "file_url": "https://x.example.com/a.pdf"},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 422
        assert response.json()["detail"] == {"field": "course_id", "message": "Pick a course from the list."}

    async def test_file_required(self, client, courses, user_id):
        response = await client.post(
            "/materials/",
            json={"course_id": str(courses["csc"].id), "title": "Notes"},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "file_url"
