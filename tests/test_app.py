import io
from datetime import datetime

import pytest
from werkzeug.test import Client
from werkzeug.wrappers import Request

from comandad.app import Server, build_server, main
from comandad.models import CORSConfig, ServerConfig

AUTH = {"Authorization": "Bearer token"}


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def server(data_dir):
    return build_server(ServerConfig(port=0, data_dir=str(data_dir),
                                     bearer_token="token", enabled=True))


@pytest.fixture
def client(server):
    return Client(server)


def test_build_server_creates_dir_and_default_cors(data_dir, server):
    assert data_dir.is_dir()
    assert server.config.cors.enabled is True
    assert server.config.cors.allowed_methods == ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    assert server.config.cors.max_age == 3600


def test_build_server_requires_config():
    with pytest.raises(ValueError, match="server configuration not found"):
        build_server(None)


def test_build_server_reports_directory_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(OSError, match="error creating data directory"):
        build_server(ServerConfig(data_dir=str(blocker / "data")))


def test_health_needs_no_auth(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    parsed = datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))
    assert parsed.tzinfo is not None and parsed.microsecond == 0


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer secret"}])
def test_protected_route_requires_token(client, headers):
    response = client.get("/list", headers=headers)
    assert response.status_code == 401


def test_options_returns_cors_headers(client):
    response = client.options("/files")
    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
    assert response.headers["Access-Control-Max-Age"] == "3600"
    assert "Authorization" in response.headers["Access-Control-Allow-Headers"]


def test_unknown_route_is_not_found(client):
    response = client.get("/nowhere", headers=AUTH)
    assert response.status_code == 404


def test_cors_disabled_gives_no_headers(tmp_path):
    server = Server(ServerConfig(data_dir=str(tmp_path)))
    request = Request.from_values(path="/list")
    assert server.cors_headers(request) == {}


def test_cors_enabled_without_lists_uses_defaults(tmp_path):
    server = Server(ServerConfig(data_dir=str(tmp_path), cors=CORSConfig(enabled=True)))
    headers = server.cors_headers(Request.from_values(path="/list"))
    assert headers["Access-Control-Allow-Origin"] == "*"
    assert headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
    assert headers["Access-Control-Allow-Headers"] == "Authorization, Content-Type"
    assert headers["Access-Control-Max-Age"] == "3600"


def test_file_round_trip_through_app(client):
    created = client.post("/files", json={"path": "test.yaml", "content": "test content"},
                          headers=AUTH)
    assert created.status_code == 200
    assert created.headers["Access-Control-Allow-Origin"] == "*"
    content = client.get("/files/content", query_string={"path": "test.yaml"}, headers=AUTH)
    assert content.status_code == 200
    assert content.get_data(as_text=True) == "test content"
    listing = client.get("/list", headers=AUTH).get_json()
    assert [entry["path"] for entry in listing["files"]] == ["test.yaml"]


def test_upload_and_download_through_app(client, data_dir):
    uploaded = client.post(
        "/files/upload",
        data={"file": (io.BytesIO(b"test content"), "test.txt"), "path": "uploaded.txt"},
        headers=AUTH,
    )
    assert uploaded.status_code == 200
    assert (data_dir / "uploaded.txt").read_bytes() == b"test content"
    downloaded = client.get("/files/download", query_string={"path": "uploaded.txt"},
                            headers=AUTH)
    assert downloaded.status_code == 200
    assert downloaded.get_data() == b"test content"


def test_upload_traversal_through_app(client):
    response = client.post(
        "/files/upload",
        data={"file": (io.BytesIO(b"test content"), "test.txt"), "path": "../test.txt"},
        headers=AUTH,
    )
    assert response.status_code == 403
    assert response.get_json()["error"] == "Invalid file path: access denied"


def test_yaml_upload_through_app(client, data_dir):
    response = client.post("/yaml/upload", json={"content": "a: b\n"}, headers=AUTH)
    assert response.status_code == 200
    name = response.get_json()["file"]["path"]
    assert (data_dir / name).read_text() == "a: b\n"


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as excinfo:
        main(["--port", "notanumber"])
    assert excinfo.value.code == 2


def test_main_reports_unusable_data_dir(tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    assert main(["--data-dir", str(blocker / "data"), "--port", "0"]) == 1
    assert "error creating data directory" in capsys.readouterr().err