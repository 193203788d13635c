"""Tests for the run history store."""
from pathlib import Path

import pytest

from heicbatch import config, db
from heicbatch.conversion.models import ConversionOutcome, FailureKind, Task


@pytest.fixture(autouse=True)
def history_db(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "HISTORY_DATABASE_URL", f"sqlite:///{tmp_path / 'nested' / 'history.db'}")
    db.reset_engine()
    db.init_db()
    yield
    db.reset_engine()


def _tasks(n):
    return [Task(index=i, source_path=Path(f"/in/{i}.png"), final_output_path=Path(f"/out/{i}.heic")) for i in range(n)]


def test_init_db_is_idempotent(tmp_path):
    db.init_db()

    assert (tmp_path / "nested" / "history.db").exists()


def test_run_lifecycle():
    db.save_run("run-1", "heic", 3, 4, quality=0.8, output_dir="/out")
    assert db.get_run("run-1")["status"] == "running"

    db.finish_run("run-1", succeeded=2, failed=1)

    row = db.get_run("run-1")
    assert row["status"] == "finished"
    assert (row["succeeded"], row["failed"]) == (2, 1)
    assert row["quality"] == pytest.approx(0.8)
    assert row["worker_count"] == 4


def test_record_outcomes_including_unprocessed_tasks():
    tasks = _tasks(3)
    outcomes = [
        ConversionOutcome.success(),
        ConversionOutcome.failure(FailureKind.DISK_FULL, "No space left"),
        None,
    ]
    db.save_run("run-2", "jpeg", 3, 2)

    db.record_outcomes("run-2", tasks, outcomes)

    rows = db.get_task_outcomes("run-2")
    assert [r["status"] for r in rows] == ["succeeded", "failed", "pending"]
    assert rows[1]["failure_kind"] == "disk_full"
    assert rows[1]["detail"] == "No space left"
    assert rows[0]["output_path"] == str(Path("/out/0.heic"))


def test_unknown_run_returns_none():
    assert db.get_run("missing") is None
    assert db.get_task_outcomes("missing") == []
