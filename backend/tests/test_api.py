from sqlalchemy import select

from boxtracker.core.security import CallerIdentity

from conftest import PASSCODE, auth_headers

ALICE = CallerIdentity(uid="uid-alice", email="alice@example.org", name="Alice Volunteer")
BOB = CallerIdentity(uid="uid-bob", email="bob@example.org", name="Bob Helper")

BOX42 = {
    "boxId": "BOX42",
    "label": "Hardware Store",
    "address": "1 Main St",
    "city": "Atlanta",
    "state": "GA",
    "passcode": PASSCODE,
}


def provision(client, payload=None, caller=ALICE):
    return client.post("/api/v1/volunteer/boxes", json=payload or BOX42, headers=auth_headers(caller))


def test_health(api_client):
    res = api_client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_provision_then_duplicate(api_client):
    res = provision(api_client)
    assert res.status_code == 201, res.text
    body = res.json()
    assert body == {
        "success": True,
        "boxId": "BOX42",
        "message": "Location saved, user authorized, and initial report created.",
    }

    res = provision(api_client, caller=BOB)
    assert res.status_code == 409
    assert res.json() == {"kind": "already-exists", "detail": "Box ID BOX42 has already been set up."}

    res = api_client.get("/api/v1/public/boxes/BOX42")
    assert res.status_code == 200
    box = res.json()
    assert box["label"] == "Hardware Store"
    assert box["lat"] == 33.749
    assert box["status"] == "active"
    assert "provisionedBy" not in box

    history = api_client.get("/api/v1/public/boxes/BOX42/reports").json()
    assert [r["reportType"] for r in history] == ["box_registered"]


def test_provision_requires_sign_in(api_client):
    res = api_client.post("/api/v1/volunteer/boxes", json=BOX42)
    assert res.status_code == 401
    assert res.json()["kind"] == "unauthenticated"

    res = api_client.post("/api/v1/volunteer/boxes", json=BOX42, headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


def test_provision_with_wrong_passcode(api_client):
    res = provision(api_client, {**BOX42, "passcode": "nope"})
    assert res.status_code == 403
    assert res.json()["kind"] == "permission-denied"

    assert api_client.get("/api/v1/public/boxes/BOX42").status_code == 404


def test_provision_missing_fields(api_client):
    res = provision(api_client, {"passcode": PASSCODE})
    assert res.status_code == 400
    assert res.json() == {"kind": "invalid-argument", "detail": "Missing required field(s): boxId, address."}


def test_negative_box_count_is_a_validation_error(api_client):
    res = provision(api_client, {**BOX42, "boxes": -1})
    assert res.status_code == 422
    assert res.json()["kind"] == "invalid-argument"


def test_authorization_endpoints(api_client):
    headers = auth_headers(BOB)

    res = api_client.get("/api/v1/volunteer/authorization", headers=headers)
    assert res.json() == {"isAuthorized": False, "displayName": "Bob Helper"}

    res = api_client.post("/api/v1/volunteer/authorization", json={"code": "guess"}, headers=headers)
    assert res.status_code == 403

    res = api_client.post("/api/v1/volunteer/authorization", json={"code": PASSCODE}, headers=headers)
    assert res.status_code == 200
    assert res.json()["success"] is True

    res = api_client.get("/api/v1/volunteer/authorization", headers=headers)
    assert res.json()["isAuthorized"] is True


def test_public_report_flow(api_client, providers):
    provision(api_client)

    res = api_client.post("/api/v1/public/reports", json={
        "boxId": "BOX42",
        "formType": "problem-report-form",
        "description": "Box is damaged",
        "contactEmail": "pat@example.org",
    })
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["success"] is True
    assert body["notification"]["sent"] is True
    record_id = body["recordId"]

    assert len(providers.sent_to("mail.test")) == 1

    history = api_client.get("/api/v1/public/boxes/BOX42/reports").json()
    assert [r["reportType"] for r in history] == ["box_registered", "problem_report"]
    assert history[1]["status"] == "new"

    res = api_client.post(f"/api/v1/volunteer/reports/{record_id}/clear", headers=auth_headers(ALICE))
    assert res.status_code == 200
    assert res.json()["status"] == "cleared"

    res = api_client.post(f"/api/v1/volunteer/reports/{record_id}/clear", headers=auth_headers(BOB))
    assert res.status_code == 403


def test_report_with_unknown_form_type(api_client):
    res = api_client.post("/api/v1/public/reports", json={"boxId": "BOX42", "formType": "spam"})
    assert res.status_code == 400
    assert res.json()["kind"] == "invalid-argument"


def test_delete_and_restore_box(api_client):
    provision(api_client)

    res = api_client.delete("/api/v1/volunteer/boxes/BOX42", headers=auth_headers(BOB))
    assert res.status_code == 403

    res = api_client.delete("/api/v1/volunteer/boxes/BOX42", headers=auth_headers(ALICE))
    assert res.status_code == 200
    assert res.json() == {"success": True, "boxId": "BOX42", "status": "deleted"}

    res = api_client.post("/api/v1/volunteer/boxes/BOX42/restore", headers=auth_headers(ALICE))
    assert res.json()["status"] == "active"


def test_locations_cache_self_heals(api_client):
    provision(api_client)

    res = api_client.get("/api/v1/public/locations-cache")
    assert res.status_code == 200
    assert res.headers["cache-control"] == "public, max-age=3600"
    assert res.headers["access-control-allow-origin"] == "*"
    assert [loc["id"] for loc in res.json()["locations"]] == ["BOX42"]


def test_cache_blob_is_served_with_cache_headers(api_client):
    provision(api_client)

    res = api_client.get("/api/v1/triggers/refresh-locations-cache")
    assert res.status_code == 200
    assert res.json()["url"].endswith("/blobs/cache/locations.json")

    res = api_client.get("/blobs/cache/locations.json")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("application/json")
    assert res.headers["cache-control"] == "public, max-age=3600"
    assert res.headers["access-control-allow-origin"] == "*"
    assert [loc["id"] for loc in res.json()["locations"]] == ["BOX42"]


def test_blob_route_reads_current_storage_dir(api_client, tmp_path):
    # Storage follows BLOB_STORAGE_DIR as configured when the app started
    res = api_client.get("/blobs/cache/locations.json")
    assert res.status_code == 404
    assert res.json()["kind"] == "not-found"

    api_client.get("/api/v1/public/locations-cache")
    assert (tmp_path / "blobs" / "cache" / "locations.json").is_file()
    assert api_client.get("/blobs/cache/locations.json").status_code == 200

    assert api_client.get("/blobs/cache/locations.json.meta.json").status_code == 404
    assert api_client.get("/blobs/../api.db").status_code == 404


def test_triggers(api_client, providers):
    provision(api_client)
    providers.sheet_rows = [
        ["Label", "Address"],
        ["Pizza Place", "22 Peach Ave", "Decatur", "GA"],
    ]

    res = api_client.get("/api/v1/triggers/sync-location-suggestions")
    assert res.status_code == 200
    assert res.json() == {"success": True, "synced": 1, "message": "Synced 1 location suggestions."}

    res = api_client.get("/api/v1/triggers/refresh-locations-cache")
    assert res.status_code == 200
    assert res.json()["count"] == 1
    assert res.json()["url"] == "https://cdn.test/blobs/cache/locations.json"


def test_trigger_delay_is_bounded(api_client):
    res = api_client.get("/api/v1/triggers/sync-location-suggestions", params={"delaySeconds": 301})
    assert res.status_code == 422


def test_sync_failure_is_internal_error(api_client, providers):
    providers.sheet_http_status = 500

    res = api_client.get("/api/v1/triggers/sync-location-suggestions")
    assert res.status_code == 500
    assert res.json() == {"kind": "internal", "detail": "Failed to read the location spreadsheet."}


def test_volunteer_jobs_are_gated_and_audited(api_client, providers):
    providers.sheet_rows = [["Label", "Address"], ["Pizza Place", "22 Peach Ave"]]

    res = api_client.post("/api/v1/volunteer/jobs/sync-location-suggestions", headers=auth_headers(ALICE))
    assert res.status_code == 403

    provision(api_client)
    res = api_client.post("/api/v1/volunteer/jobs/sync-location-suggestions", headers=auth_headers(ALICE))
    assert res.status_code == 200
    assert res.json()["synced"] == 1

    res = api_client.post("/api/v1/volunteer/jobs/refresh-locations-cache", headers=auth_headers(ALICE))
    assert res.status_code == 200
    assert res.json()["count"] == 1

    res = api_client.get(
        "/api/v1/volunteer/suggestions",
        params={"q": "pizza", "field": "label"},
        headers=auth_headers(ALICE),
    )
    assert res.status_code == 200
    assert [s["label"] for s in res.json()] == ["Pizza Place"]

    from boxtracker.models.audit import AuditLog

    async def audit_actions():
        async with api_client.app.state.sessionmaker() as session:
            result = await session.execute(select(AuditLog.action).order_by(AuditLog.created_at))
            return list(result.scalars().all())

    actions = api_client.portal.call(audit_actions)
    assert actions == ["provision_box", "sync_location_suggestions", "refresh_locations_cache"]
