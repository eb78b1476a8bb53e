"""Integration tests for the FastAPI web application."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from conftest import ScriptedImap
from fastapi.testclient import TestClient

from mail_exporter.controller import ExportController
from mail_exporter.core.config import AppSettings, ExportSettings, ImapSettings
from mail_exporter.transport import MailSession
from mail_exporter.web import create_app


def _client(mailbox: ScriptedImap, tmp_path: Path) -> TestClient:
    settings = AppSettings(
        imap=ImapSettings(host="imap.test", username="user@example.com"),
        export=ExportSettings(output_root=tmp_path),
    )
    controller = ExportController(
        settings,
        session_factory=lambda: MailSession(connection_factory=mailbox.factory()),
        clock=lambda: datetime(2025, 10, 14, 9, 30, 0),
    )
    return TestClient(create_app(settings, controller))


def test_predicate_listing_exposes_parameters(mailbox, tmp_path) -> None:
    client = _client(mailbox, tmp_path)

    response = client.get("/api/predicates")
    assert response.status_code == 200
    payload = response.json()
    names = [item["name"] for item in payload]
    assert names[0] == "all"
    assert "and" not in names and "or" not in names
    header = next(item for item in payload if item["name"] == "header")
    assert header["parameters"] == [
        {"name": "field", "kind": "text"},
        {"name": "text", "kind": "text"},
    ]


def test_connect_search_and_download(mailbox, tmp_path) -> None:
    client = _client(mailbox, tmp_path)

    state = client.get("/api/session")
    assert state.json() == {"state": "disconnected", "operation": None, "found": 0}

    connected = client.post("/api/session", json={"password": "secret"})
    assert connected.status_code == 200
    assert connected.json()["state"] == "authenticated"
    mailbox.connections[0].login.assert_called_once_with("user@example.com", "secret")

    search = client.post(
        "/api/search", json={"predicate": "subject", "values": ["Message"]}
    )
    assert search.status_code == 200
    assert search.json() == {
        "predicate": "subject",
        "count": 5,
        "ids": [101, 102, 103, 104, 105],
    }

    mailbox.failing_uids.add(102)
    download = client.post("/api/download")
    assert download.status_code == 200
    payload = download.json()
    assert payload["title"] == "Downloading Complete (4/5)"
    assert payload["message"].endswith("Failed count: 1")
    assert (payload["succeeded"], payload["failed"]) == (4, 1)
    failed = [item for item in payload["outcomes"] if item["error"]]
    assert [item["uid"] for item in failed] == [102]

    export_root = Path(payload["path"])
    assert export_root.name == "user@example.com_20251014093000"
    assert (export_root / "0_Message 1" / "Headers.txt").is_file()

    progress = client.get("/api/download").json()
    assert progress == {"running": False, "done": 4, "total": 5}

    disconnected = client.delete("/api/session")
    assert disconnected.json()["state"] == "disconnected"
    assert client.delete("/api/session").status_code == 200


def test_search_before_connect_is_conflict(mailbox, tmp_path) -> None:
    client = _client(mailbox, tmp_path)

    response = client.post("/api/search", json={"predicate": "all"})
    assert response.status_code == 409
    assert response.json()["title"] == "Not Connected"


def test_invalid_parameters_are_reported(mailbox, tmp_path) -> None:
    client = _client(mailbox, tmp_path)
    client.post("/api/session", json={"password": "secret"})

    response = client.post(
        "/api/search", json={"predicate": "smaller", "values": ["big"]}
    )
    assert response.status_code == 422
    payload = response.json()
    assert payload["title"] == "Invalid Search Parameters"
    assert "size" in payload["message"]

    unknown = client.post("/api/search", json={"predicate": "nonsense"})
    assert unknown.status_code == 422


def test_download_without_result_is_bad_request(mailbox, tmp_path) -> None:
    client = _client(mailbox, tmp_path)
    client.post("/api/session", json={"password": "secret"})

    response = client.post("/api/download")
    assert response.status_code == 400
    assert response.json()["title"] == "Downloading Failed"


def test_rejected_login_is_unauthorized(tmp_path) -> None:
    def refuse(host: str, port: int, use_tls: bool, timeout: float):
        raise ConnectionRefusedError("connection refused")

    settings = AppSettings(
        imap=ImapSettings(host="imap.test", username="user@example.com"),
        export=ExportSettings(output_root=tmp_path),
    )
    controller = ExportController(
        settings,
        session_factory=lambda: MailSession(connection_factory=refuse),
    )
    client = TestClient(create_app(settings, controller))

    response = client.post("/api/session", json={"password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {
        "title": "Authentication Failed",
        "message": "connection refused",
    }
    assert client.get("/api/session").json()["state"] == "disconnected"


def test_cancel_without_download(mailbox, tmp_path) -> None:
    client = _client(mailbox, tmp_path)

    response = client.post("/api/download/cancel")
    assert response.status_code == 200
    assert response.json() == {"cancelled": False}
