"""Run history. SQLite by default; set HISTORY_DATABASE_URL for another database.
Records each run and its per-task outcomes after the pool has joined. Workers never touch it."""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from heicbatch import config as app_config
from heicbatch.conversion.models import ConversionOutcome, Task

logger = logging.getLogger("heicbatch.db")

_engine: Optional[Engine] = None

REQUIRED_TABLES = ("runs", "task_outcomes")


def _is_sqlite() -> bool:
    return app_config.HISTORY_DATABASE_URL.startswith("sqlite")


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        kwargs = {}
        if _is_sqlite():
            kwargs["connect_args"] = {"check_same_thread": False}
            db_file = app_config.HISTORY_DATABASE_URL[len("sqlite:///"):]
            if db_file and db_file != ":memory:":
                Path(db_file).parent.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(app_config.HISTORY_DATABASE_URL, **kwargs)
        logger.info("History database engine created (%s)", "SQLite" if _is_sqlite() else _engine.dialect.name)
    return _engine


def reset_engine() -> None:
    """Dispose the cached engine so the next call picks up a changed URL."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def init_db() -> None:
    """Create required tables if they do not exist."""
    with session() as conn:
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS runs (
                run_id VARCHAR(64) PRIMARY KEY,
                status VARCHAR(32) NOT NULL,
                target_format VARCHAR(16) NOT NULL,
                quality FLOAT,
                output_dir VARCHAR(1024),
                total INTEGER NOT NULL,
                worker_count INTEGER NOT NULL,
                succeeded INTEGER,
                failed INTEGER,
                created_at VARCHAR(50) NOT NULL,
                updated_at VARCHAR(50) NOT NULL
            )
        """))
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS task_outcomes (
                run_id VARCHAR(64) NOT NULL,
                task_index INTEGER NOT NULL,
                source_path VARCHAR(1024) NOT NULL,
                output_path VARCHAR(1024) NOT NULL,
                status VARCHAR(32) NOT NULL,
                failure_kind VARCHAR(32),
                detail TEXT,
                created_at VARCHAR(50) NOT NULL,
                PRIMARY KEY (run_id, task_index)
            )
        """))
    logger.info("Required tables ensured: %s", ", ".join(REQUIRED_TABLES))


@contextmanager
def session():
    with get_engine().connect() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def save_run(
    run_id: str,
    target_format: str,
    total: int,
    worker_count: int,
    *,
    quality: Optional[float] = None,
    output_dir: Optional[str] = None,
) -> None:
    now = _now_iso()
    with session() as conn:
        conn.execute(
            text("""
                INSERT INTO runs (run_id, status, target_format, quality, output_dir, total, worker_count, succeeded, failed, created_at, updated_at)
                VALUES (:run_id, 'running', :target_format, :quality, :output_dir, :total, :worker_count, NULL, NULL, :now, :now)
            """),
            {
                "run_id": run_id,
                "target_format": target_format,
                "quality": quality,
                "output_dir": output_dir,
                "total": total,
                "worker_count": worker_count,
                "now": now,
            },
        )


def record_outcomes(run_id: str, tasks: Sequence[Task], outcomes: Sequence[Optional[ConversionOutcome]]) -> None:
    """Store one row per task. Tasks without an outcome are stored as pending."""
    now = _now_iso()
    rows = []
    for task, outcome in zip(tasks, outcomes):
        rows.append({
            "run_id": run_id,
            "task_index": task.index,
            "source_path": str(task.source_path),
            "output_path": str(task.final_output_path),
            "status": outcome.status.value if outcome else "pending",
            "failure_kind": outcome.kind.value if outcome and outcome.kind else None,
            "detail": outcome.detail if outcome else None,
            "created_at": now,
        })
    if not rows:
        return
    with session() as conn:
        conn.execute(
            text("""
                INSERT INTO task_outcomes (run_id, task_index, source_path, output_path, status, failure_kind, detail, created_at)
                VALUES (:run_id, :task_index, :source_path, :output_path, :status, :failure_kind, :detail, :created_at)
            """),
            rows,
        )


def finish_run(run_id: str, succeeded: int, failed: int) -> None:
    with session() as conn:
        conn.execute(
            text("UPDATE runs SET status = 'finished', succeeded = :s, failed = :f, updated_at = :now WHERE run_id = :run_id"),
            {"s": succeeded, "f": failed, "now": _now_iso(), "run_id": run_id},
        )


def get_run(run_id: str) -> Optional[dict]:
    with get_engine().connect() as conn:
        row = conn.execute(
            text("""
                SELECT run_id, status, target_format, quality, output_dir, total, worker_count, succeeded, failed, created_at
                FROM runs WHERE run_id = :id
            """),
            {"id": run_id},
        ).fetchone()
    if not row:
        return None
    return {
        "run_id": row[0],
        "status": row[1],
        "target_format": row[2],
        "quality": row[3],
        "output_dir": row[4],
        "total": row[5],
        "worker_count": row[6],
        "succeeded": row[7],
        "failed": row[8],
        "created_at": row[9],
    }


def get_task_outcomes(run_id: str) -> list[dict]:
    """Task rows for a run, in task index order."""
    with get_engine().connect() as conn:
        rows = conn.execute(
            text("""
                SELECT task_index, source_path, output_path, status, failure_kind, detail
                FROM task_outcomes WHERE run_id = :id ORDER BY task_index
            """),
            {"id": run_id},
        ).fetchall()
    return [
        {
            "task_index": r[0],
            "source_path": r[1],
            "output_path": r[2],
            "status": r[3],
            "failure_kind": r[4],
            "detail": r[5],
        }
        for r in rows
    ]
