"""
Credential Store Tests

Engine options per backend, eager connection check and degraded startup,
and the create/find operations on SQLite.
"""

import pytest
from sqlalchemy.pool import StaticPool

from groupie_edge.config import Settings
from groupie_edge.store import CredentialStore, DuplicateUserError, engine_options


@pytest.fixture
def memory_store():
    store = CredentialStore.connect(Settings(_env_file=None, DATABASE_URL="sqlite://"))
    assert store is not None
    yield store
    store.close()


# ============================================================================
# Engine Options
# ============================================================================

def test_mysql_pool_bounds():
    """Test that the MySQL engine gets the 10 open / 5 idle / 30 min policy"""
    settings = Settings(_env_file=None, DB_HOST="db.internal", DB_PASS="s3cret")

    options = engine_options(settings, settings.database_url)

    assert options["pool_size"] == 5
    assert options["pool_size"] + options["max_overflow"] == 10
    assert options["pool_recycle"] == 1800
    assert options["pool_pre_ping"] is True
    assert options["connect_args"] == {
        "connect_timeout": 5,
        "read_timeout": 5,
        "write_timeout": 5,
    }


def test_mysql_url_from_db_fields():
    settings = Settings(
        _env_file=None,
        DB_HOST="db.internal",
        DB_PORT=3307,
        DB_USER="groupie",
        DB_PASS="s3cret",
        DB_NAME="tracker",
    )

    url = settings.database_url

    assert url.drivername == "mysql+pymysql"
    assert url.host == "db.internal"
    assert url.port == 3307
    assert url.username == "groupie"
    assert url.password == "s3cret"
    assert url.database == "tracker"
    assert url.query["charset"] == "utf8mb4"


def test_sqlite_memory_uses_static_pool():
    settings = Settings(_env_file=None, DATABASE_URL="sqlite://")

    options = engine_options(settings, settings.database_url)

    assert options["poolclass"] is StaticPool
    assert "pool_size" not in options


# ============================================================================
# Connection Tests
# ============================================================================

def test_connect_returns_none_when_unreachable(tmp_path):
    """Test that an unreachable database degrades instead of raising"""
    missing = tmp_path / "no" / "such" / "dir" / "users.db"
    settings = Settings(_env_file=None, DATABASE_URL=f"sqlite:///{missing}")

    assert CredentialStore.connect(settings) is None


def test_connect_creates_schema(memory_store):
    assert memory_store.find_by_id(1) is None


# ============================================================================
# Operations
# ============================================================================

def test_create_and_find_user(memory_store):
    user_id = memory_store.create_user("Mercury", "Freddie", "M", "$2b$04$fakehash")

    record = memory_store.find_by_id(user_id)

    assert record.id == user_id
    assert record.last_name == "Mercury"
    assert record.first_name == "Freddie"
    assert record.sex == "M"
    assert record.password_hash == "$2b$04$fakehash"


def test_generated_ids_are_distinct(memory_store):
    first = memory_store.create_user("May", "Brian", "M", "h1")
    second = memory_store.create_user("Taylor", "Roger", "M", "h2")

    assert first != second


def test_duplicate_names_raise(memory_store):
    memory_store.create_user("Deacon", "John", "M", "h1")

    with pytest.raises(DuplicateUserError):
        memory_store.create_user("Deacon", "John", "M", "h2")


def test_store_usable_after_duplicate(memory_store):
    """Test that a rejected insert leaves the pooled connection usable"""
    memory_store.create_user("Deacon", "John", "M", "h1")
    with pytest.raises(DuplicateUserError):
        memory_store.create_user("Deacon", "John", "M", "h2")

    user_id = memory_store.create_user("Deacon", "Joan", "F", "h3")

    assert memory_store.find_by_id(user_id).first_name == "Joan"
