from tests.conftest import FakeChannel


def _register_devices(client, *device_ids):
    registry = client.app.state.device_registry
    channels = {}
    for device_id in device_ids:
        channels[device_id] = FakeChannel()
        registry.register(device_id, device_id.lower(), channels[device_id])
    return channels


def _add_text(client, text="hello"):
    response = client.post("/upload", json={"text": text})
    assert response.status_code == 201
    return response.json()


def test_end_to_end_cut_lifecycle(client, clock):
    channels = _register_devices(client, "A", "B", "C")
    coordinator = client.app.state.cut_coordinator

    item = _add_text(client, "hello")
    items = client.get("/items").json()
    assert len(items) == 1
    assert items[0]["kind"] == "text"
    assert items[0]["text"] == "hello"
    assert "cut" not in items[0]

    r = client.post(f"/items/{item['id']}/cut", json={"ownerId": "A", "ttlSeconds": 1})
    assert r.status_code == 200
    cut = r.json()["cut"]
    assert cut["owner"] == "A"
    assert cut["pending"] == ["B", "C"]

    r = client.post(f"/items/{item['id']}/paste-ack", json={"deviceId": "B", "token": cut["token"]})
    assert r.json() == {"ok": True, "pending": ["C"]}
    assert len(client.get("/items").json()) == 1

    clock.advance(2)
    assert client.portal.call(coordinator.expire_sweep) == [item["id"]]

    items = client.get("/items").json()
    assert len(items) == 1
    assert "cut" not in items[0]

    r = client.post(f"/items/{item['id']}/cut", json={"ownerId": "A", "ttlSeconds": 60})
    new_cut = r.json()["cut"]
    assert new_cut["token"] != cut["token"]
    assert new_cut["pending"] == ["B", "C"]

    r = client.post(f"/items/{item['id']}/paste-ack", json={"deviceId": "C", "token": cut["token"]})
    assert r.status_code == 403

    r = client.post(f"/items/{item['id']}/paste-ack", json={"deviceId": "B", "token": new_cut["token"]})
    assert r.json() == {"ok": True, "pending": ["C"]}
    r = client.post(f"/items/{item['id']}/paste-ack", json={"deviceId": "C", "token": new_cut["token"]})
    assert r.json() == {"ok": True, "deleted": True}

    assert client.get(f"/items/{item['id']}").status_code == 404
    assert client.get("/items").json() == []
    for channel in channels.values():
        assert len(channel.of_type("item-deleted")) == 1
        assert len(channel.of_type("cut-expired")) == 1
        assert len(channel.of_type("cut-created")) == 2
    assert [e["deviceId"] for e in channels["A"].of_type("paste-ack")] == ["B", "B", "C"]


def test_cut_errors(client):
    _register_devices(client, "A", "B")
    item = _add_text(client)

    assert client.post(f"/items/{item['id']}/cut", json={}).status_code == 400
    assert client.post(f"/items/{item['id']}/cut").status_code == 400
    assert client.post(f"/items/{item['id']}/cut", json={"ownerId": "A", "ttlSeconds": -1}).status_code == 400
    assert client.post("/items/missing/cut", json={"ownerId": "A"}).status_code == 404

    assert client.post(f"/items/{item['id']}/cut", json={"ownerId": "A"}).status_code == 200
    r = client.post(f"/items/{item['id']}/cut", json={"ownerId": "A"})
    assert r.status_code == 409
    assert "detail" in r.json()


def test_paste_ack_errors(client):
    _register_devices(client, "A", "B")
    item = _add_text(client)

    r = client.post(f"/items/{item['id']}/paste-ack", json={"deviceId": "B"})
    assert r.status_code == 400

    r = client.post(f"/items/{item['id']}/paste-ack", json={"deviceId": "B", "token": "t"})
    assert r.status_code == 404

    r = client.post("/items/missing/paste-ack", json={"deviceId": "B", "token": "t"})
    assert r.status_code == 404

    client.post(f"/items/{item['id']}/cut", json={"ownerId": "A"})
    r = client.post(f"/items/{item['id']}/paste-ack", json={"deviceId": "B", "token": "forged"})
    assert r.status_code == 403
    assert client.get(f"/items/{item['id']}").json()["cut"]["pending"] == ["B"]


def test_upload_text_as_form_field(client):
    r = client.post("/upload", data={"text": "from form"})

    assert r.status_code == 201
    assert r.json()["kind"] == "text"
    assert r.json()["text"] == "from form"


def test_upload_without_content_is_rejected(client):
    assert client.post("/upload", data={}).status_code == 400
    assert client.post("/upload", json={"text": ""}).status_code == 400


def test_upload_and_download_file(client):
    r = client.post("/upload", files={"file": ("notes.txt", b"file body", "text/plain")})
    assert r.status_code == 201
    item = r.json()
    assert item["kind"] == "file"
    assert item["name"] == "notes.txt"
    assert item["storedName"] == f"{item['id']}.txt"
    assert item["size"] == 9
    assert item["mimeType"] == "text/plain"

    r = client.get(f"/download/{item['id']}")
    assert r.status_code == 200
    assert r.content == b"file body"
    assert "notes.txt" in r.headers["content-disposition"]

    assert client.get(f"/items/{item['id']}").status_code == 200


def test_download_with_delete_removes_item(client):
    channels = _register_devices(client, "A")
    item = _add_text(client, "once")

    r = client.get(f"/download/{item['id']}", params={"delete": "1"})

    assert r.status_code == 200
    assert r.text == "once"
    assert client.get(f"/items/{item['id']}").status_code == 404
    assert channels["A"].of_type("item-deleted") == [{"type": "item-deleted", "itemId": item["id"]}]


def test_download_missing(client):
    assert client.get("/download/missing").status_code == 404

    r = client.post("/upload", files={"file": ("a.bin", b"123", "application/octet-stream")})
    item = r.json()
    (client.app.state.item_repository.files_dir / item["storedName"]).unlink()

    r = client.get(f"/download/{item['id']}")
    assert r.status_code == 404
    assert r.json() == {"detail": "file missing"}


def test_delete_endpoint(client):
    item = _add_text(client)

    assert client.delete(f"/delete/{item['id']}").json() == {"ok": True}
    assert client.delete(f"/delete/{item['id']}").status_code == 404
    assert client.get("/items").json() == []


def test_devices_listing(client):
    channels = _register_devices(client, "A", "B")
    client.app.state.device_registry.disconnect("B", channels["B"])

    devices = {d["id"]: d for d in client.get("/devices").json()}

    assert devices["A"]["online"] is True
    assert devices["B"]["online"] is False
    assert devices["A"]["name"] == "a"
    assert "lastSeen" in devices["A"]


def test_identity_is_created_once(client, settings):
    first = client.get("/identity").json()

    assert first["id"]
    assert first["name"].startswith("device-")
    assert settings.identity_file.exists()


def test_health(client):
    _register_devices(client, "A")

    body = client.get("/health").json()

    assert body == {"status": "ok", "devices_known": 1, "devices_online": 1, "open_cuts": 0}


def test_paste_ack_with_non_ascii_token_is_forbidden(client):
    _register_devices(client, "A", "B")
    item = _add_text(client)
    client.post(f"/items/{item['id']}/cut", json={"ownerId": "A"})

    r = client.post(f"/items/{item['id']}/paste-ack", json={"deviceId": "B", "token": "тест"})

    assert r.status_code == 403
    assert client.get(f"/items/{item['id']}").json()["cut"]["pending"] == ["B"]


def test_cut_with_unusable_ttl_is_rejected(client):
    _register_devices(client, "A", "B")
    item = _add_text(client)

    r = client.post(
        f"/items/{item['id']}/cut",
        content='{"ownerId": "A", "ttlSeconds": NaN}',
        headers={"content-type": "application/json"},
    )
    assert r.status_code == 400

    r = client.post(f"/items/{item['id']}/cut", json={"ownerId": "A", "ttlSeconds": 1e20})
    assert r.status_code == 400

    assert "cut" not in client.get(f"/items/{item['id']}").json()


def test_timestamps_are_utc(client):
    _register_devices(client, "A", "B")
    item = _add_text(client)
    assert item["createdAt"].endswith("Z")

    cut = client.post(f"/items/{item['id']}/cut", json={"ownerId": "A"}).json()["cut"]
    assert cut["deadline"] == "2026-01-01T12:05:00Z"

    assert all(d["lastSeen"].endswith("Z") for d in client.get("/devices").json())


def test_upload_larger_than_one_chunk(client):
    body = b"x" * (3 * 1024 * 1024 + 17)

    r = client.post("/upload", files={"file": ("big.bin", body, "application/octet-stream")})

    assert r.status_code == 201
    assert r.json()["size"] == len(body)
    assert client.get(f"/download/{r.json()['id']}").content == body
    assert list(client.app.state.settings.tmp_dir.iterdir()) == []
