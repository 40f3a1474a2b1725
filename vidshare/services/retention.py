"""
Retention sweeper: on a fixed wall-clock schedule (every N hours from local midnight in a
fixed time zone, like cron `0 */6 * * *`) delete every stored file and every video row.

The two phases are not transactional, and a sweep is not excluded from in-flight uploads.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable
from zoneinfo import ZoneInfo
from sqlalchemy.orm import Session
from vidshare.config import Settings, get_settings
from vidshare.database import SessionLocal
from vidshare.services.storage import storage_dirs
from vidshare.services.video_store import delete_all_videos

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    files_deleted: int = 0
    records_deleted: int = 0
    failures: int = 0


def purge_directory(path: Path) -> tuple[int, int]:
    """Delete every file directly under path. Returns (deleted, failed); a failed file never stops the rest."""
    deleted = failed = 0
    if not path.is_dir():
        return deleted, failed
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            continue
        try:
            entry.unlink()
            deleted += 1
        except FileNotFoundError:
            pass
        except OSError as e:
            failed += 1
            logger.warning("Retention: could not delete %s: %s", entry, e)
    return deleted, failed


def sweep(db: Session) -> SweepResult:
    """Phase 1: wipe originals, processed and thumbnails. Phase 2: delete all video rows."""
    result = SweepResult()
    for directory in storage_dirs():
        deleted, failed = purge_directory(directory)
        result.files_deleted += deleted
        result.failures += failed
    result.records_deleted = delete_all_videos(db)
    logger.info(
        "Retention sweep done: %d files deleted, %d records deleted, %d failures",
        result.files_deleted, result.records_deleted, result.failures,
    )
    return result


def run_sweep(session_factory: Callable[[], Session] = SessionLocal) -> SweepResult:
    db = session_factory()
    try:
        return sweep(db)
    finally:
        db.close()


def next_sweep_at(now: datetime, interval_hours: int, tz: ZoneInfo) -> datetime:
    """First schedule boundary strictly after now. Boundaries are local hours 0, N, 2N, ... < 24."""
    interval_hours = min(max(1, interval_hours), 24)
    local_now = now.astimezone(tz)
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    for day in (0, 1):
        base = midnight + timedelta(days=day)
        for hour in range(0, 24, interval_hours):
            candidate = base.replace(hour=hour)
            if candidate.astimezone(timezone.utc) > now.astimezone(timezone.utc):
                return candidate
    return midnight + timedelta(days=2)


def seconds_until_next_sweep(now: datetime, interval_hours: int, tz: ZoneInfo) -> float:
    next_run = next_sweep_at(now, interval_hours, tz)
    return (next_run.astimezone(timezone.utc) - now.astimezone(timezone.utc)).total_seconds()


async def retention_sweeper(
    settings: Settings | None = None,
    session_factory: Callable[[], Session] = SessionLocal,
):
    """Long-running task started by the app lifespan; cancelled at shutdown."""
    settings = settings or get_settings()
    tz = ZoneInfo(settings.retention_timezone)
    while True:
        now = datetime.now(timezone.utc)
        delay = seconds_until_next_sweep(now, settings.retention_interval_hours, tz)
        logger.info("Next retention sweep in %.0fs (%s)", delay, (now + timedelta(seconds=delay)).astimezone(tz).isoformat())
        await asyncio.sleep(delay)
        try:
            await asyncio.to_thread(run_sweep, session_factory)
        except Exception:
            logger.exception("Retention sweep failed")
