"""Tests for the HTTP gateway."""
from printer_bridge.device.testpage import INIT, CUT_FULL

OCTET = {"Content-Type": "application/octet-stream"}


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_status_starts_disconnected(client):
    response = client.get("/status")
    assert response.status_code == 200
    assert response.get_json() == {"status": "disconnected"}


def test_print_requires_data(client, device):
    response = client.post("/print", data=b"", headers=OCTET)
    assert response.status_code == 400
    assert response.get_json() == {"success": False, "error": "No print data received."}
    assert device.calls == []


def test_print_connects_and_writes(client, device):
    response = client.post("/print", data=b"\x1b\x40Hello\n", headers=OCTET)

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "bytes_written": 8}
    assert device.written == [(1, b"\x1b\x40Hello\n")]
    assert client.get("/status").get_json()["status"] == "connected"


def test_print_reuses_session(client, device):
    client.post("/print", data=b"\x1b\x40", headers=OCTET)
    client.post("/print", data=b"\x1b\x40", headers=OCTET)

    assert device.call_names().count("open") == 1
    assert len(device.written) == 2


def test_print_without_printer(client, backend):
    backend.devices = []

    response = client.post("/print", data=b"\x1b\x40", headers=OCTET)

    assert response.status_code == 404
    assert response.get_json()["success"] is False
    status = client.get("/status").get_json()
    assert status["status"] == "error"
    assert status["message"] == "No printer was selected"


def test_print_open_failure(client, device):
    device.fail_on["open"] = OSError("Access denied")

    response = client.post("/print", data=b"\x1b\x40", headers=OCTET)

    assert response.status_code == 500
    assert response.get_json()["error"].startswith("Printer connection failed:")


def test_write_failure_drops_session(client, device):
    client.post("/connect")
    device.fail_on["transfer_out"] = OSError("Pipe error")

    response = client.post("/print", data=b"\x1b\x40", headers=OCTET)

    assert response.status_code == 500
    assert "Failed to write data" in response.get_json()["error"]
    assert device.call_names()[-2:] == ["release_interface", "close"]
    assert client.get("/status").get_json() == {"status": "disconnected"}

    # Next request reconnects on a fresh handle
    del device.fail_on["transfer_out"]
    response = client.post("/print", data=b"\x1b\x40", headers=OCTET)
    assert response.status_code == 200
    assert device.call_names().count("open") == 2


def test_connect_in_progress(client, gateway):
    gateway.manager._connecting = True

    response = client.post("/connect")

    assert response.status_code == 503
    assert "in progress" in response.get_json()["error"]
    gateway.manager._connecting = False


def test_connect_and_disconnect(client, device):
    response = client.post("/connect")
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["status"] == "connected"
    assert body["device"]["product_name"] == "TM-T20"

    response = client.post("/disconnect")
    assert response.get_json() == {"success": True, "status": "disconnected"}
    assert not device.opened

    response = client.post("/disconnect")
    assert response.get_json() == {"success": True, "status": "disconnected"}


def test_connect_with_ids(client, device):
    response = client.post("/connect", json={"vendor_id": "04b8", "product_id": "0e15"})
    assert response.status_code == 200

    client.post("/disconnect")
    response = client.post("/connect", json={"vendor_id": "1234"})
    assert response.status_code == 404


def test_connect_with_bad_ids(client):
    response = client.post("/connect", json={"vendor_id": "epson"})
    assert response.status_code == 400


def test_devices(client):
    assert client.get("/devices").get_json() == {"devices": []}

    client.post("/connect")

    devices = client.get("/devices").get_json()["devices"]
    assert [d["vendor_id_hex"] for d in devices] == ["04b8"]


def test_stored_device(client):
    assert client.get("/device").get_json() == {"device": None}

    client.post("/connect")
    assert client.get("/device").get_json()["device"]["product_id_hex"] == "0e15"

    client.post("/disconnect")
    assert client.get("/device").get_json() == {"device": None}


def test_test_page(client, device):
    response = client.post("/test-page")

    assert response.status_code == 200
    (endpoint, data), = device.written
    assert data.startswith(INIT)
    assert data.endswith(CUT_FULL)
    assert b"TM-T20" in data
    assert response.get_json()["bytes_written"] == len(data)


def test_cors_headers(client):
    response = client.get("/status", headers={"Origin": "http://localhost:8080"})
    assert response.headers.get("Access-Control-Allow-Origin") in ("*", "http://localhost:8080")
