# tests/test_settings.py
from tests.factories import PNG_BYTES, PUBLIC_URL_PREFIX


def test_public_settings_are_typed_defaults(client):
    r = client.get("/api/settings")
    assert r.status_code == 200
    body = r.json()
    assert body["VAT_RATE"] == 7.0
    assert body["MAINTENANCE_MODE"] is False
    assert body["SHIPPING_FLAT_RATE"] == 50.0
    assert body["WEBSITE_NAME"] == "My Construction Shop"


def test_update_setting_records_history(client, admin, admin_headers):
    r = client.put("/api/admin/settings/SHIPPING_FLAT_RATE", json={"value": "80"}, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Setting updated"
    assert body["setting"]["value"] == "80"
    assert body["setting"]["parsed"] == 80.0
    assert body["setting"]["update_by"] == admin.id

    client.put("/api/admin/settings/SHIPPING_FLAT_RATE", json={"value": "90"}, headers=admin_headers)

    r = client.get("/api/admin/settings/SHIPPING_FLAT_RATE/history", headers=admin_headers)
    history = r.json()
    assert [(h["old_value"], h["new_value"]) for h in history] == [("80", "90"), (None, "80")]
    assert history[0]["changed_by_name"] == admin.full_name

    assert client.get("/api/settings").json()["SHIPPING_FLAT_RATE"] == 90.0


def test_invalid_values_are_rejected(client, admin_headers):
    r = client.put("/api/admin/settings/VAT_RATE", json={"value": "seven"}, headers=admin_headers)
    assert r.status_code == 400
    r = client.put("/api/admin/settings/MAINTENANCE_MODE", json={"value": "yes"}, headers=admin_headers)
    assert r.status_code == 400


def test_unknown_key(client, admin_headers):
    r = client.put("/api/admin/settings/NOPE", json={"value": "1"}, headers=admin_headers)
    assert r.status_code == 404
    assert client.get("/api/admin/settings/NOPE", headers=admin_headers).status_code == 404


def test_list_by_group(client, admin_headers):
    r = client.get("/api/admin/settings", params={"group": "order"}, headers=admin_headers)
    assert r.status_code == 200
    assert {s["key"] for s in r.json()} == {"SHIPPING_FLAT_RATE", "SHIPPING_FREE_THRESHOLD"}


def test_upload_logo_replaces_previous(client, admin_headers, storage):
    def upload():
        return client.post(
            "/api/admin/settings/WEBSITE_LOGO_URL/image",
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
            headers=admin_headers,
        )

    first = upload().json()["setting"]["value"]
    assert first.startswith(PUBLIC_URL_PREFIX + "settings/website_logo_url/")

    second = upload().json()["setting"]["value"]
    assert second != first
    assert storage.removed == [first[len(PUBLIC_URL_PREFIX):]]


def test_image_upload_needs_image_setting(client, admin_headers):
    r = client.post(
        "/api/admin/settings/WEBSITE_NAME/image",
        files={"file": ("logo.png", PNG_BYTES, "image/png")},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_settings_admin_needs_sys_admin(client, customer_headers):
    r = client.put("/api/admin/settings/VAT_RATE", json={"value": "10"}, headers=customer_headers)
    assert r.status_code == 403
