from datetime import datetime

from metricflow.store import KeyValueStore

from conftest import bearer, signup

FULL_METRIC = {
    "metric_name": "Monthly Revenue",
    "current_value": 8000,
    "target_value": 10000,
    "unit": "$",
    "category": "Sales",
}


async def _create(client, headers, body=None) -> dict:
    response = await client.post("/metrics", json=FULL_METRIC if body is None else body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["metric"]


async def test_metrics_require_a_valid_bearer_token(api_client):
    async with api_client() as client:
        assert (await client.get("/metrics")).status_code == 401
        assert (await client.get("/metrics", headers={"Authorization": "Basic abc"})).status_code == 401
        assert (await client.get("/metrics", headers={"Authorization": "Bearer "})).status_code == 401

        bogus = await client.post("/metrics", json=FULL_METRIC, headers={"Authorization": "Bearer not-a-token"})
        assert bogus.status_code == 401
        assert bogus.json() == {"error": "Unauthorized"}


async def test_create_applies_defaults_for_missing_fields(api_client):
    async with api_client() as client:
        headers = bearer(await signup(client, "defaults@example.com"))

        metric = await _create(client, headers, body={})
        assert metric["metric_name"] == "Untitled Metric"
        assert metric["current_value"] == 0
        assert metric["target_value"] == 0
        assert metric["unit"] == ""
        assert metric["category"] == "Sales"
        assert metric["created_at"] == metric["last_updated"]


async def test_create_stamps_owner_from_token(api_client):
    async with api_client() as client:
        owner = await signup(client, "owner@example.com")
        forged = dict(FULL_METRIC, user_id="someone-else", id="chosen-id", created_at="2000-01-01T00:00:00Z")

        metric = await _create(client, bearer(owner), body=forged)
        assert metric["user_id"] == owner["user"]["id"]
        assert metric["id"] != "chosen-id"
        assert metric["created_at"] != "2000-01-01T00:00:00Z"


async def test_create_rejects_unknown_category_and_bad_numbers(api_client):
    async with api_client() as client:
        headers = bearer(await signup(client, "strict@example.com"))

        for body in (
            {"category": "Gardening"},
            {"current_value": "lots"},
            {"target_value": -5},
            {"metric_name": "x" * 101},
        ):
            response = await client.post("/metrics", json=body, headers=headers)
            assert response.status_code == 400, body
            assert response.json()["error"]


async def test_booleans_and_numeric_strings_are_not_numbers(api_client):
    async with api_client() as client:
        headers = bearer(await signup(client, "types@example.com"))

        for body in ({"current_value": True}, {"target_value": "12"}, {"current_value": False, "target_value": 5}):
            response = await client.post("/metrics", json=body, headers=headers)
            assert response.status_code == 400, body

        metric = await _create(client, headers)
        response = await client.put(
            f"/metrics/{metric['id']}", json=dict(FULL_METRIC, target_value="10000"), headers=headers
        )
        assert response.status_code == 400
        response = await client.put(f"/metrics/{metric['id']}", json=dict(FULL_METRIC, current_value=True), headers=headers)
        assert response.status_code == 400
        assert (await client.get("/metrics", headers=headers)).json()["metrics"] == [metric]


async def test_create_update_list_round_trip(api_client):
    async with api_client() as client:
        headers = bearer(await signup(client, "roundtrip@example.com"))
        created = await _create(client, headers)

        changes = {
            "metric_name": "Quarterly Leads",
            "current_value": 42.5,
            "target_value": 50,
            "unit": "#",
            "category": "Marketing",
        }
        response = await client.put(f"/metrics/{created['id']}", json=changes, headers=headers)
        assert response.status_code == 200
        updated = response.json()["metric"]
        for field_name, value in changes.items():
            assert updated[field_name] == value
        assert updated["id"] == created["id"]
        assert updated["user_id"] == created["user_id"]
        assert updated["created_at"] == created["created_at"]
        assert datetime.fromisoformat(updated["last_updated"].replace("Z", "+00:00")) > datetime.fromisoformat(
            created["last_updated"].replace("Z", "+00:00")
        )

        listed = (await client.get("/metrics", headers=headers)).json()["metrics"]
        assert listed == [updated]


async def test_update_validates_every_field(api_client):
    async with api_client() as client:
        headers = bearer(await signup(client, "validate@example.com"))
        created = await _create(client, headers)

        missing_unit = {k: v for k, v in FULL_METRIC.items() if k != "unit"}
        for body in (
            dict(FULL_METRIC, metric_name="   "),
            dict(FULL_METRIC, target_value=0),
            dict(FULL_METRIC, current_value=-1),
            dict(FULL_METRIC, category="Other"),
            missing_unit,
        ):
            response = await client.put(f"/metrics/{created['id']}", json=body, headers=headers)
            assert response.status_code == 400, body


async def test_other_users_cannot_see_or_touch_metrics(api_client):
    async with api_client() as client:
        alice = bearer(await signup(client, "alice@example.com"))
        bob = bearer(await signup(client, "bob@example.com"))
        metric = await _create(client, alice)

        assert (await client.get("/metrics", headers=bob)).json() == {"metrics": []}

        update = await client.put(f"/metrics/{metric['id']}", json=FULL_METRIC, headers=bob)
        assert update.status_code == 404
        assert update.json() == {"error": "Metric not found"}

        delete = await client.delete(f"/metrics/{metric['id']}", headers=bob)
        assert delete.status_code == 404

        still_there = (await client.get("/metrics", headers=alice)).json()["metrics"]
        assert [m["id"] for m in still_there] == [metric["id"]]


async def test_delete_is_final(api_client):
    async with api_client() as client:
        headers = bearer(await signup(client, "delete@example.com"))
        metric = await _create(client, headers)

        response = await client.delete(f"/metrics/{metric['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        assert (await client.delete(f"/metrics/{metric['id']}", headers=headers)).status_code == 404
        assert (await client.put(f"/metrics/{metric['id']}", json=FULL_METRIC, headers=headers)).status_code == 404
        assert (await client.get("/metrics", headers=headers)).json() == {"metrics": []}


async def test_deleted_account_token_is_rejected(api_client, identity_provider):
    async with api_client() as client:
        payload = await signup(client, "gone@example.com")
        await identity_provider.delete_user(payload["user"]["id"])

        response = await client.get("/metrics", headers=bearer(payload))
        assert response.status_code == 401


async def test_store_failure_returns_generic_error(api_client):
    class BrokenStore(KeyValueStore):
        async def get(self, key):
            raise RuntimeError("connection reset")

        async def set(self, key, value):
            raise RuntimeError("connection reset")

        async def delete(self, key):
            raise RuntimeError("connection reset")

        async def get_by_prefix(self, prefix):
            raise RuntimeError("connection reset")

    async with api_client(store=BrokenStore()) as client:
        headers = bearer(await signup(client, "broken@example.com"))

        listing = await client.get("/metrics", headers=headers)
        assert listing.status_code == 500
        assert listing.json() == {"error": "Failed to fetch metrics"}

        creating = await client.post("/metrics", json=FULL_METRIC, headers=headers)
        assert creating.status_code == 500
        assert creating.json() == {"error": "Failed to create metric"}


async def test_routes_honour_configured_prefix(api_client, settings):
    prefixed = settings.model_copy(update={"route_prefix": "/make-server"})
    async with api_client(app_settings=prefixed) as client:
        response = await client.post(
            "/make-server/auth/signup",
            json={"email": "prefix@example.com", "password": "Supersecret1", "fullName": "Pre Fix"},
        )
        assert response.status_code == 200
        token = response.json()["session"]["access_token"]

        listing = await client.get("/make-server/metrics", headers={"Authorization": f"Bearer {token}"})
        assert listing.status_code == 200
        assert (await client.get("/metrics")).status_code == 404
        assert (await client.get("/make-server/health")).json()["status"] == "ok"
