"""
Application Factory, Lifespan and Configuration Tests

Covers settings loading from the environment, the health endpoint, the
lifespan handler (owned vs injected collaborators) and degraded mode, where
the relay keeps working without a database.
"""

import httpx
import pytest
from fastapi import status
from fastapi.testclient import TestClient
from pydantic import ValidationError

from groupie_edge.config import Settings, validate_configuration
from groupie_edge.main import create_app
from groupie_edge.proxy import UpstreamClient
from groupie_edge.store import CredentialStore


@pytest.fixture
def upstream_client():
    return UpstreamClient(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, content=b"[]", headers={"Content-Type": "application/json"})
        )
    )


# ============================================================================
# Configuration Tests
# ============================================================================

def test_settings_defaults(monkeypatch):
    for name in ("PORT", "DISABLE_DB", "DB_HOST", "DB_NAME", "DB_PASS", "DB_PASSWORD", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.PORT == 8080
    assert settings.DISABLE_DB is False
    assert settings.DB_HOST == "localhost"
    assert settings.DB_PORT == 3306
    assert settings.DB_NAME == "groupi_tracker"
    assert settings.UPSTREAM_TIMEOUT_SECONDS == 10.0
    assert settings.upstream_base_url_str == "https://groupietrackers.herokuapp.com/api"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("DISABLE_DB", "1")
    monkeypatch.setenv("DB_PASSWORD", "from-alias")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.PORT == 9090
    assert settings.DISABLE_DB is True
    assert settings.DB_PASS == "from-alias"
    assert settings.LOG_LEVEL == "DEBUG"


def test_empty_environment_values_use_defaults(monkeypatch):
    monkeypatch.setenv("PORT", "")
    monkeypatch.setenv("DISABLE_DB", "")

    settings = Settings(_env_file=None)

    assert settings.PORT == 8080
    assert settings.DISABLE_DB is False


def test_invalid_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, LOG_LEVEL="LOUD")


def test_pool_size_cannot_exceed_open_connections():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DB_POOL_SIZE=20, DB_MAX_OPEN_CONNS=10)


def test_configuration_report_masks_password():
    settings = Settings(_env_file=None, DB_PASS="hunter22", BCRYPT_ROUNDS=4)

    report = validate_configuration(settings)

    assert "hunter22" not in report["database"]
    assert any("BCRYPT_ROUNDS" in warning for warning in report["warnings"])


# ============================================================================
# Health Endpoint Tests
# ============================================================================

def test_health_with_store():
    settings = Settings(_env_file=None, DATABASE_URL="sqlite://")
    store = CredentialStore.connect(settings)
    client = TestClient(create_app(settings, credential_store=store))

    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"
    assert response.json()["database"] == "up"
    store.close()


def test_health_with_database_disabled():
    client = TestClient(create_app(Settings(_env_file=None, DISABLE_DB=True)))

    assert client.get("/health").json()["database"] == "disabled"


def test_unknown_api_path_is_structured_not_found(tmp_path, upstream_client):
    (tmp_path / "index.html").write_text("<html>index</html>")
    settings = Settings(_env_file=None, DISABLE_DB=True, SITE_ROOT=str(tmp_path))
    client = TestClient(create_app(settings, upstream_client=upstream_client))

    response = client.get("/api/no/such/resource")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "not_found"


def test_health_is_not_shadowed_by_page_fallback(tmp_path):
    (tmp_path / "index.html").write_text("<html>index</html>")
    client = TestClient(create_app(Settings(_env_file=None, DISABLE_DB=True, SITE_ROOT=str(tmp_path))))

    assert client.get("/health").json()["service"] == "groupie-edge"


# ============================================================================
# Lifespan Tests
# ============================================================================

def test_lifespan_skips_store_when_disabled():
    app = create_app(Settings(_env_file=None, DISABLE_DB=True))

    with TestClient(app) as client:
        assert app.state.credential_store is None
        assert isinstance(app.state.upstream_client, UpstreamClient)
        assert client.get("/health").json()["database"] == "disabled"

    # Collaborators created by the lifespan are released on shutdown
    assert app.state.upstream_client is None


def test_lifespan_connects_store():
    app = create_app(Settings(_env_file=None, DATABASE_URL="sqlite://", BCRYPT_ROUNDS=4))

    with TestClient(app) as client:
        assert isinstance(app.state.credential_store, CredentialStore)
        response = client.post(
            "/api/register",
            json={"nom": "Doe", "prenom": "Jane", "sexe": "F", "password": "abcdef"},
        )
        assert response.status_code == status.HTTP_201_CREATED

    assert app.state.credential_store is None


def test_lifespan_keeps_injected_collaborators(upstream_client):
    app = create_app(Settings(_env_file=None, DISABLE_DB=True), upstream_client=upstream_client)

    with TestClient(app):
        assert app.state.upstream_client is upstream_client

    assert app.state.upstream_client is upstream_client


def test_unreachable_database_degrades_but_relays(tmp_path, upstream_client):
    """Test that a failed store init still serves proxy traffic"""
    settings = Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'missing' / 'dir' / 'users.db'}",
    )
    app = create_app(settings, upstream_client=upstream_client)

    with TestClient(app) as client:
        assert client.get("/health").json()["database"] == "unavailable"

        register = client.post(
            "/api/register",
            json={"nom": "Doe", "prenom": "Jane", "sexe": "F", "password": "abcdef"},
        )
        assert register.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

        relayed = client.get("/api/artists-proxy")
        assert relayed.status_code == status.HTTP_200_OK
        assert relayed.content == b"[]"
