# tests/core/test_server.py
import json

import pytest

from locobuild.core.managers.build_record_manager import BuildRecordManager
from locobuild.server.app import create_app


@pytest.fixture
def site_root(tmp_path):
    (tmp_path / "docs").mkdir()
    (tmp_path / "index.html").write_text("<h1>Home</h1>")
    (tmp_path / "docs" / "index.html").write_text("<h1>Docs</h1>")
    (tmp_path / "style.css").write_text("body {}")
    return tmp_path


@pytest.fixture
def client(site_root):
    app = create_app(site_root)
    app.config["TESTING"] = True
    return app.test_client()


def test_serves_root_index(client):
    response = client.get("/")
    assert response.status_code == 200
    assert b"Home" in response.data


def test_serves_directory_index(client):
    assert b"Docs" in client.get("/docs/").data
    assert b"Docs" in client.get("/docs").data


def test_serves_static_file(client):
    response = client.get("/style.css")
    assert response.status_code == 200
    assert response.mimetype == "text/css"


def test_missing_file_is_404(client):
    assert client.get("/nope.html").status_code == 404


def test_path_traversal_is_404(client):
    assert client.get("/../secret.txt").status_code == 404


def test_build_record_endpoint(site_root, client):
    (site_root / ".locobuild-build-record.json").write_text(json.dumps({"site#master": "abc1234"}))
    response = client.get("/_locobuild/build-record")
    assert response.status_code == 200
    assert response.get_json() == {"site#master": "abc1234"}


def test_build_record_endpoint_reports_malformed_record(site_root):
    records = BuildRecordManager()
    records.record_path(site_root).write_text("[]")
    client = create_app(site_root, records).test_client()
    response = client.get("/_locobuild/build-record")
    assert response.status_code == 500
    assert "error" in response.get_json()
