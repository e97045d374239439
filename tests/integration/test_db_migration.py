from __future__ import annotations

import os
import sqlite3
import subprocess
import sys
from pathlib import Path


def test_alembic_upgrade_and_downgrade_for_storage_deletions(tmp_path: Path) -> None:
    repo_root = Path(__file__).resolve().parents[2]
    db_path = tmp_path / "migration_test.db"
    env = os.environ.copy()
    env["DATABASE_URL"] = f"sqlite:///{db_path}"

    subprocess.run(
        [
            sys.executable,
            "-m",
            "alembic",
            "-c",
            "alembic.ini",
            "upgrade",
            "0002_snapshot_version_and_storage_deletions",
        ],
        cwd=repo_root,
        env=env,
        check=True,
    )

    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='storage_deletions'")
    assert cur.fetchone() is not None

    cur.execute("PRAGMA table_info(applications)")
    application_cols = {row[1] for row in cur.fetchall()}
    assert {"cv_snapshot_json", "cv_snapshot_version", "snapshot_email"} <= application_cols

    cur.execute("PRAGMA table_info(cv_records)")
    cv_not_null = {row[1]: row[3] for row in cur.fetchall()}
    assert cv_not_null["user_id"] == 1

    cur.execute("PRAGMA index_list(applications)")
    index_names = {row[1] for row in cur.fetchall()}
    assert any("uq_application_posting_candidate" in name or name.startswith("sqlite_autoindex") for name in index_names)

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "downgrade", "0001_initial_schema"],
        cwd=repo_root,
        env=env,
        check=True,
    )

    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='storage_deletions'")
    assert cur.fetchone() is None

    cur.execute("PRAGMA table_info(applications)")
    application_cols_after = {row[1] for row in cur.fetchall()}
    assert "cv_snapshot_version" not in application_cols_after

    conn.close()
