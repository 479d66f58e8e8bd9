# tests/test_app.py
import logging
from logging.handlers import TimedRotatingFileHandler

from app.core.config import get_settings
from app.core.logger import setup_logging


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_unknown_route_has_message(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"message": "Not Found"}


def test_validation_errors_are_wrapped(client):
    r = client.post("/api/auth/login", json={"login": "somchai"})
    assert r.status_code == 422
    body = r.json()
    assert body["message"] == "Invalid request"
    assert body["errors"][0]["loc"][-1] == "password"


def test_unknown_fields_are_rejected(client, customer_headers):
    r = client.patch("/api/profile", json={"access_level": 999}, headers=customer_headers)
    assert r.status_code == 422


def test_log_file_rotates_at_midnight(tmp_path, monkeypatch):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    monkeypatch.setattr(get_settings(), "LOG_DIR", str(tmp_path / "logs"))
    try:
        setup_logging()
        [file_handler] = [h for h in root.handlers if isinstance(h, TimedRotatingFileHandler)]
        assert file_handler.when == "MIDNIGHT"
        assert file_handler.baseFilename == str(tmp_path / "logs" / "app.log")
        file_handler.close()
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
