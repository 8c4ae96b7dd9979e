"""Tests for database schema creation and migration."""

from shoplist.db.schema import _SCHEMA_VERSION, ensure_schema


def test_ensure_schema_creates_tables(tmp_path):
    """Schema creates the list, item and id tables."""
    conn = ensure_schema(tmp_path / "test.db")

    tables = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ).fetchall()
    table_names = {row["name"] for row in tables}

    assert "shopping_lists" in table_names
    assert "shopping_items" in table_names
    assert "issued_ids" in table_names
    assert "schema_version" in table_names

    conn.close()


def test_ensure_schema_creates_parent_dirs(tmp_path):
    """Schema creates parent directories if they don't exist."""
    db_path = tmp_path / "sub" / "dir" / "test.db"
    conn = ensure_schema(db_path)
    assert db_path.exists()
    conn.close()


def test_ensure_schema_idempotent(tmp_path):
    """Calling ensure_schema twice doesn't error."""
    db_path = tmp_path / "test.db"
    ensure_schema(db_path).close()

    conn = ensure_schema(db_path)
    row = conn.execute("SELECT version FROM schema_version").fetchone()
    assert row["version"] == _SCHEMA_VERSION
    assert conn.execute("SELECT COUNT(*) AS n FROM schema_version").fetchone()["n"] == 1
    conn.close()


def test_ensure_schema_wal_mode(tmp_path):
    """File databases use WAL journal mode."""
    conn = ensure_schema(tmp_path / "test.db")
    mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    assert mode == "wal"
    conn.close()


def test_ensure_schema_in_memory():
    conn = ensure_schema(":memory:")
    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    conn.close()
