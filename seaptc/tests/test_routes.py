"""
HTTP contract tests: response shapes, status codes, staff and participant
access, and the write paths through the store.
"""
import json
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from seaptc.config.settings import Settings
from seaptc.errors import ErrorCode
from seaptc.main import create_app
from seaptc.services.blob_codecs import encode_configuration
from seaptc.tests.conftest import ADMIN_ID, STAFF_ID, make_class, make_configuration, make_participant

STAFF = {"X-Staff-ID": STAFF_ID}
ADMIN = {"X-Staff-ID": ADMIN_ID}


@pytest_asyncio.fixture
async def participants(store):
    await store.put_configuration(make_configuration())
    await store.put_classes([
        make_class(101, 0, 0, title="Knots - Basics", evaluation_codes=("e101",), programs=1),
        make_class(201, 1, 2, evaluation_codes=("e201a", "e201b"), programs=3),
        make_class(401, 3, 3),
        make_class(601, 5, 5, evaluation_codes=("e601",)),
    ])
    stored = await store.put_participants([
        make_participant("Jane", "Doe", classes=(101, 201, 601)),
        make_participant("Sam", "Smith", registration_number="R200", classes=(201,)),
    ])
    return {p.first_name: p for p in stored}


@pytest.fixture
def app(store):
    settings = Settings()
    # One hour into the conference day
    settings.time_override = timedelta(hours=1)
    app = create_app(settings)
    app.state.store = store
    return app


@pytest_asyncio.fixture
async def client(app, participants):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


def assert_error(response, status_code: int, code: str):
    assert response.status_code == status_code
    data = response.json()
    assert data["success"] is False
    assert data["code"] == code
    assert "message" in data


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["max_version"] is not None


class TestSessionEvents:
    """Class events consumed by the registration site"""

    @pytest.mark.asyncio
    async def test_class_event(self, client):
        response = await client.get("/api/sessionEvents/201")
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["number"] == 201
        assert result["startSession"] == 2
        assert result["endSession"] == 3
        assert result["startTime"] == [2024, 3, 9, 10, 10]
        assert result["endTime"] == [2024, 3, 9, 13, 15]
        assert result["programs"] == ["Cub Pack adults", "Scout Troop adults"]

    @pytest.mark.asyncio
    async def test_no_class_event(self, client):
        response = await client.get("/api/sessionEvents/999")
        result = response.json()["result"]
        assert result["number"] == 999
        assert result["startTime"] == [2024, 3, 9, 9, 0]
        assert result["endTime"] == [2024, 3, 9, 16, 45]

    @pytest.mark.asyncio
    async def test_unknown_class(self, client):
        assert_error(await client.get("/api/sessionEvents/555"), 404, ErrorCode.CLASS_NOT_FOUND)
        assert_error(await client.get("/api/sessionEvents/abc"), 404, ErrorCode.CLASS_NOT_FOUND)


class TestCatalog:

    @pytest.mark.asyncio
    async def test_classes_by_program(self, client):
        response = await client.get("/catalog/classes", params={"program": "bsa"})
        assert response.status_code == 200
        assert [c["number"] for c in response.json()["classes"]] == [201]

        response = await client.get("/catalog/classes", params={"sort": "-number"})
        assert [c["number"] for c in response.json()["classes"]] == [601, 401, 201, 101]

    @pytest.mark.asyncio
    async def test_unknown_program(self, client):
        assert_error(await client.get("/catalog/classes", params={"program": "xyz"}), 400, ErrorCode.INVALID_INPUT)

    @pytest.mark.asyncio
    async def test_grid(self, client):
        response = await client.get("/catalog/grid")
        data = response.json()
        assert [cell["number"] for cell in data["morning"][0]] == [101, 201]
        assert [cell["number"] for cell in data["afternoon"][0]] == [401, 0, 601]


class TestDashboardAccess:
    """Staff identification and admin-only routes"""

    @pytest.mark.asyncio
    async def test_requires_staff_id(self, client):
        assert_error(await client.get("/dashboard"), 401, ErrorCode.AUTH_REQUIRED)

    @pytest.mark.asyncio
    async def test_rejects_non_staff(self, client):
        response = await client.get("/dashboard", headers={"X-Staff-ID": "visitor@example.org"})
        assert_error(response, 403, ErrorCode.STAFF_REQUIRED)

    @pytest.mark.asyncio
    async def test_summary(self, client):
        response = await client.get("/dashboard", headers=STAFF)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["classes"] == 4
        assert data["max_version"] == 3
        assert data["versions"] == {"configuration": 1, "classes": 2, "participants": 3}

    @pytest.mark.asyncio
    async def test_admin_routes_reject_staff(self, client):
        response = await client.put("/dashboard/configuration", headers=STAFF,
                                    content=encode_configuration(make_configuration()))
        assert_error(response, 403, ErrorCode.ADMIN_REQUIRED)
        assert_error(await client.delete("/dashboard/blobs/printSignatures", headers=STAFF),
                     403, ErrorCode.ADMIN_REQUIRED)


class TestDashboardData:

    @pytest.mark.asyncio
    async def test_put_configuration(self, client):
        config = make_configuration(catalog_status_message="Registration opens soon")
        response = await client.put("/dashboard/configuration", headers=ADMIN, content=encode_configuration(config))
        assert response.status_code == 200
        assert response.json()["version"] == 4

        await client.post("/dashboard/reload", headers=ADMIN)
        response = await client.get("/dashboard/configuration", headers=ADMIN)
        assert response.json()["catalogStatusMessage"] == "Registration opens soon"

    @pytest.mark.asyncio
    async def test_put_configuration_strict(self, client):
        doc = json.loads(encode_configuration(make_configuration()))
        doc["unknownSetting"] = True
        response = await client.put("/dashboard/configuration", headers=ADMIN, content=json.dumps(doc))
        assert_error(response, 400, ErrorCode.INVALID_CONFIGURATION)

        response = await client.put("/dashboard/configuration", headers=ADMIN, params={"strict": "false"},
                                    content=json.dumps(doc))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_put_configuration_requires_cookie_key(self, client):
        response = await client.put("/dashboard/configuration", headers=ADMIN,
                                    content=encode_configuration(make_configuration(cookie_key="")))
        assert_error(response, 400, ErrorCode.INVALID_CONFIGURATION)

    @pytest.mark.asyncio
    async def test_put_classes_visible_after_reload(self, client):
        response = await client.put("/dashboard/classes", headers=STAFF,
                                    json=[{"number": 301, "start": 2, "end": 2, "title": "Cooking"}])
        assert response.status_code == 200
        assert response.json()["count"] == 1

        # Cached snapshot until reload
        response = await client.get("/dashboard/classes", headers=STAFF)
        assert [c["number"] for c in response.json()] == [101, 201, 401, 601]

        response = await client.post("/dashboard/reload", headers=STAFF)
        assert response.json()["classes"] == 1

        response = await client.get("/dashboard/classes", headers=STAFF)
        [c] = response.json()
        assert c["number"] == 301
        assert c["lunch"] is not None

    @pytest.mark.asyncio
    async def test_class_detail(self, client, participants):
        response = await client.get("/dashboard/classes/201", headers=STAFF)
        assert response.status_code == 200
        data = response.json()
        assert data["class"]["number"] == 201
        assert [p["id"] for p in data["participants"]] == [participants["Jane"].id, participants["Sam"].id]

        assert_error(await client.get("/dashboard/classes/555", headers=STAFF), 404, ErrorCode.CLASS_NOT_FOUND)

    @pytest.mark.asyncio
    async def test_put_participants(self, client, participants):
        body = [
            {"firstName": "Jane", "lastName": "Doe", "registrationNumber": "R100", "classes": [101]},
            {"firstName": "Ann", "lastName": "New", "registrationNumber": "R300"},
        ]
        response = await client.put("/dashboard/participants", headers=STAFF, json=body)
        assert response.json()["count"] == 2

        await client.post("/dashboard/reload", headers=STAFF)
        response = await client.get("/dashboard/participants", headers=STAFF)
        names = [p["name"] for p in response.json()]
        assert names == ["Jane Doe", "Ann New"]

        response = await client.get(f"/dashboard/participants/{participants['Jane'].id}", headers=STAFF)
        assert response.json()["login_code"] == participants["Jane"].login_code

    @pytest.mark.asyncio
    async def test_participant_detail(self, client, participants):
        response = await client.get(f"/dashboard/participants/{participants['Jane'].id}", headers=STAFF)
        assert response.status_code == 200
        data = response.json()
        assert [s["number"] for s in data["sessions"]] == [101, 201, 201, 0, 0, 601]
        assert data["lunch"]["name"] == "A"

        assert_error(await client.get("/dashboard/participants/nobody", headers=STAFF),
                     404, ErrorCode.PARTICIPANT_NOT_FOUND)

    @pytest.mark.asyncio
    async def test_instructor_classes(self, client, participants):
        sam = participants["Sam"].id
        url = f"/dashboard/participants/{sam}/instructorClasses"

        response = await client.post(url, headers=ADMIN, json={"modifications": {"3": 401}})
        assert response.status_code == 200

        await client.post("/dashboard/reload", headers=ADMIN)
        response = await client.get(f"/dashboard/participants/{sam}", headers=ADMIN)
        assert response.json()["instructor_classes"] == [0, 0, 0, 401, 0, 0]

        response = await client.post(url, headers=ADMIN, json={"modifications": {"3": 555}})
        assert_error(response, 400, ErrorCode.CLASS_NOT_FOUND)
        response = await client.post(url, headers=ADMIN, json={"modifications": {"7": 401}})
        assert_error(response, 400, ErrorCode.INVALID_INPUT)

    @pytest.mark.asyncio
    async def test_forms(self, client):
        response = await client.get("/dashboard/forms", headers=STAFF)
        forms = response.json()
        assert len(forms) == 2

        signatures = {f["id"]: f["print_signature"] for f in forms[:1]}
        response = await client.post("/dashboard/forms", headers=STAFF, json={"signatures": signatures})
        assert response.status_code == 200

        response = await client.get("/dashboard/forms", headers=STAFF)
        assert [f["id"] for f in response.json()] == [forms[1]["id"]]

        response = await client.get("/dashboard/forms", headers=STAFF, params={"changed": "false", "limit": 1})
        assert len(response.json()) == 1

    @pytest.mark.asyncio
    async def test_delete_blob(self, client, store):
        await store.set_print_signatures({"x": "y"})
        response = await client.delete("/dashboard/blobs/printSignatures", headers=ADMIN)
        assert response.status_code == 200
        assert await store.get_print_signatures() == {}

    @pytest.mark.asyncio
    async def test_lunch_count(self, client):
        response = await client.get("/dashboard/lunchCount", headers=STAFF)
        assert response.json()["lunch"] == {"A": 2}


class TestParticipantPages:
    """Login, schedule and evaluations"""

    @pytest.mark.asyncio
    async def test_login(self, client, participants):
        jane = participants["Jane"]
        response = await client.post("/participant/login", json={"login_code": jane.login_code})
        assert response.status_code == 200
        assert response.json()["participant_id"] == jane.id

        response = await client.post("/participant/login", json={"login_code": "000000"})
        assert_error(response, 401, ErrorCode.LOGIN_INVALID)

    @pytest.mark.asyncio
    async def test_login_validation_error(self, client):
        response = await client.post("/participant/login", json={})
        assert_error(response, 422, ErrorCode.VALIDATION_ERROR)

    @pytest.mark.asyncio
    async def test_login_closed_outside_conference_day(self, app, client, participants):
        app.state.settings.time_override = timedelta(hours=30)
        response = await client.post("/participant/login", json={"login_code": participants["Jane"].login_code})
        assert_error(response, 403, ErrorCode.CLOSED)

        # Evaluations stay open the next day
        response = await client.get("/participant/schedule", headers={"X-Login-Code": participants["Jane"].login_code})
        assert response.status_code == 200

        app.state.settings.time_override = timedelta(hours=-1)
        response = await client.get("/participant/schedule", headers={"X-Login-Code": participants["Jane"].login_code})
        assert_error(response, 403, ErrorCode.CLOSED)

    @pytest.mark.asyncio
    async def test_schedule(self, client, participants):
        assert_error(await client.get("/participant/schedule"), 401, ErrorCode.AUTH_REQUIRED)

        response = await client.get("/participant/schedule", headers={"X-Login-Code": participants["Sam"].login_code})
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Sam Smith"
        assert data["items"][4]["description"] == "201: Class 201 (1 of 2)"

    @pytest.mark.asyncio
    async def test_evaluation_flow(self, client, participants):
        headers = {"X-Login-Code": participants["Jane"].login_code}
        form = {"knowledge": "4", "presentation": "4", "usefulness": "3", "overall": "4", "comments": "Useful"}

        response = await client.post("/participant/evaluation", headers=headers,
                                     json={"eval_code": "e101", "form": form})
        assert response.status_code == 200
        assert response.json()["message"] == "Evaluation recorded."

        response = await client.get("/participant/evaluation", headers=headers, params={"evalCode": "e101"})
        data = response.json()
        assert data["class_number"] == 101
        assert data["session"]["overall"] == 4
        assert data["session"]["comments"] == "Useful"
        assert data["conference"] is None

        response = await client.get("/participant/evaluation", headers=headers, params={"evalCode": "e601"})
        assert response.json()["conference"] is not None

    @pytest.mark.asyncio
    async def test_invalid_evaluation(self, client, participants, store):
        headers = {"X-Login-Code": participants["Jane"].login_code}
        response = await client.post("/participant/evaluation", headers=headers,
                                     json={"eval_code": "e101", "form": {"overall": "9"}})
        assert_error(response, 400, ErrorCode.INVALID_INPUT)
        assert "overall" in response.json()["details"]["invalid"]

        evaluation = await store.get_evaluation(participants["Jane"].id)
        assert evaluation.is_empty()

        response = await client.get("/participant/evaluation", headers=headers, params={"evalCode": "nope"})
        assert_error(response, 404, ErrorCode.NOT_FOUND)


class TestStaffEvaluations:

    @pytest.mark.asyncio
    async def test_eval_code_lookup(self, client, participants):
        response = await client.get("/dashboard/evalCode", headers=STAFF,
                                    params={"loginCode": participants["Sam"].login_code})
        assert response.json()["participant_id"] == participants["Sam"].id

        response = await client.get("/dashboard/evalCode", headers=STAFF, params={"loginCode": "000000"})
        assert_error(response, 404, ErrorCode.PARTICIPANT_NOT_FOUND)

    @pytest.mark.asyncio
    async def test_edit(self, client, participants, store):
        url = f"/dashboard/evaluations/{participants['Jane'].id}"

        form = (await client.get(url, headers=STAFF)).json()["form"]
        form["class0"] = "101"
        form["overall0"] = "3"
        response = await client.post(url, headers=STAFF, json={"form": form})
        assert response.status_code == 200
        assert response.json()["changes"] == ["session 1"]

        evaluation = await store.get_evaluation(participants["Jane"].id)
        assert evaluation.session(0).overall_rating == 3
        assert evaluation.session(0).source == "staff"

        form = (await client.get(url, headers=STAFF)).json()["form"]
        assert form["update0"].startswith("staff @ ")
        response = await client.post(url, headers=STAFF, json={"form": form})
        assert response.json()["changes"] == []
        assert response.json()["message"].endswith("no changes")

    @pytest.mark.asyncio
    async def test_invalid_edit(self, client, participants, store):
        url = f"/dashboard/evaluations/{participants['Jane'].id}"
        form = (await client.get(url, headers=STAFF)).json()["form"]
        form["overall2"] = "4"

        response = await client.post(url, headers=STAFF, json={"form": form})
        assert_error(response, 400, ErrorCode.INVALID_INPUT)
        assert response.json()["details"]["invalid"] == ["class2"]
        assert (await store.get_evaluation(participants["Jane"].id)).is_empty()


class TestBackendErrors:

    @pytest.mark.asyncio
    async def test_database_error_is_service_unavailable(self, client, store, monkeypatch):
        async def fail(no_cache: bool = False):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(store, "get_conference", fail)
        response = await client.get("/catalog/classes")
        assert_error(response, 503, ErrorCode.SERVICE_UNAVAILABLE)
        assert "log_id" in response.json()["details"]
