"""Alembic migration tests.

File named test_zzz_alembic.py to sort LAST in pytest collection order.
Each test migrates the throwaway SQLite file from the ``settings`` fixture.
"""

import os
import subprocess
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def _alembic(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["alembic", *args],
        capture_output=True,
        text=True,
        cwd=ROOT,
        env=dict(os.environ),
    )


def test_alembic_upgrade_head() -> None:
    """alembic upgrade head succeeds and current shows the latest revision."""
    result = _alembic("upgrade", "head")
    assert result.returncode == 0, f"alembic upgrade failed: {result.stderr}"

    result = _alembic("current")
    assert result.returncode == 0
    assert "001_initial" in result.stdout


def test_alembic_downgrade_base() -> None:
    """Every table can be dropped again."""
    assert _alembic("upgrade", "head").returncode == 0
    result = _alembic("downgrade", "base")
    assert result.returncode == 0, f"alembic downgrade failed: {result.stderr}"
