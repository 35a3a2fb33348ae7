"""Persistent trailer run statistics (stats.json)."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List

from logger import get_logger

log = get_logger()

HISTORY_DAYS = 365

# One lock for every store instance: a scheduled run and an interactive
# stats/reset call may point at the same file from different threads.
_STORAGE_LOCK = threading.Lock()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunRecord:
    date: str
    downloaded: int = 0
    failed: int = 0

    @property
    def day(self) -> date | None:
        return parse_day(self.date)


@dataclass
class StatsData:
    total_downloaded: int = 0
    total_failed: int = 0
    total_folders: int = 0
    folders_with_trailer: int = 0
    runs: List[RunRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalDownloaded": self.total_downloaded,
            "totalFailed": self.total_failed,
            "totalFolders": self.total_folders,
            "foldersWithTrailer": self.folders_with_trailer,
            "runs": [asdict(r) for r in self.runs],
        }


@dataclass(frozen=True)
class TrailerStats:
    """Aggregated view for display.

    ``total_downloaded`` is raised to ``folders_with_trailer`` when the
    recorded total is lower (e.g. after a reset). It is a display figure,
    not a ledger.
    """

    total_downloaded: int = 0
    total_failed: int = 0
    total_folders: int = 0
    folders_with_trailer: int = 0
    last_7_days: int = 0
    last_30_days: int = 0
    last_365_days: int = 0
    last_run_date: str | None = None
    last_run_downloaded: int = 0
    last_run_failed: int = 0
    total_runs: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalDownloaded": self.total_downloaded,
            "totalFailed": self.total_failed,
            "totalFolders": self.total_folders,
            "foldersWithTrailer": self.folders_with_trailer,
            "last7Days": self.last_7_days,
            "last30Days": self.last_30_days,
            "last365Days": self.last_365_days,
            "lastRunDate": self.last_run_date,
            "lastRunDownloaded": self.last_run_downloaded,
            "lastRunFailed": self.last_run_failed,
            "totalRuns": self.total_runs,
        }


def parse_day(value: Any) -> date | None:
    """Parse an ISO date (or a timestamp starting with one)."""
    text = str(value or "").strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _lower_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {str(k).lower(): v for k, v in raw.items()}


def stats_from_dict(raw: Any) -> StatsData:
    """Build StatsData from parsed JSON, ignoring anything malformed."""
    if not isinstance(raw, dict):
        return StatsData()
    data = _lower_keys(raw)
    runs: List[RunRecord] = []
    raw_runs = data.get("runs")
    for item in raw_runs if isinstance(raw_runs, list) else []:
        if not isinstance(item, dict):
            continue
        run = _lower_keys(item)
        day = parse_day(run.get("date"))
        if day is None:
            continue
        runs.append(RunRecord(date=day.isoformat(), downloaded=_int(run.get("downloaded")), failed=_int(run.get("failed"))))
    return StatsData(
        total_downloaded=_int(data.get("totaldownloaded")),
        total_failed=_int(data.get("totalfailed")),
        total_folders=_int(data.get("totalfolders")),
        folders_with_trailer=_int(data.get("folderswithtrailer")),
        runs=runs,
    )


class TrailerStatsStore:
    """Load-mutate-save access to the stats file under a process-wide lock.

    Args:
        path: Location of ``stats.json``.
        clock: Returns the current UTC datetime.
    """

    def __init__(self, path: Path, clock: Callable[[], datetime] | None = None) -> None:
        self._path = Path(path)
        self._clock = clock or _utc_now

    @property
    def path(self) -> Path:
        return self._path

    def _today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    def _load(self) -> StatsData:
        if not self._path.is_file():
            return StatsData()
        try:
            with self._path.open("r", encoding="utf-8") as f:
                return stats_from_dict(json.load(f))
        except (OSError, ValueError, TypeError, OverflowError) as exc:
            log.warn(f"Failed to load stats from {self._path}: {exc}")
            return StatsData()

    def _trim_history(self, data: StatsData) -> None:
        cutoff = self._today() - timedelta(days=HISTORY_DAYS)
        data.runs = [r for r in data.runs if r.day is not None and r.day >= cutoff]

    def _save(self, data: StatsData) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data.to_dict(), f)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            log.error(f"Failed to save stats to {self._path}: {exc}")

    def record_folder_counts(self, total_folders: int, folders_with_trailer: int) -> None:
        """Store folder counts from the latest library scan."""
        with _STORAGE_LOCK:
            data = self._load()
            data.total_folders = total_folders
            data.folders_with_trailer = folders_with_trailer
            self._trim_history(data)
            self._save(data)

    def record_progress(self, downloaded: int, failed: int, run_date: date | None = None) -> None:
        """Set the counts of the run record for ``run_date`` (default: today UTC).

        An existing record for that day has its previous contribution removed
        from the totals before the new counts are added, so repeated calls
        within one run never double count.
        """
        day = run_date or self._today()
        key = day.isoformat()
        with _STORAGE_LOCK:
            data = self._load()
            existing = next((r for r in reversed(data.runs) if r.date == key), None)
            if existing is not None:
                data.total_downloaded -= existing.downloaded
                data.total_failed -= existing.failed
                existing.downloaded = downloaded
                existing.failed = failed
            else:
                data.runs.append(RunRecord(date=key, downloaded=downloaded, failed=failed))
                data.runs.sort(key=lambda r: r.date)
            data.total_downloaded += downloaded
            data.total_failed += failed
            self._trim_history(data)
            self._save(data)

    def record_run(self, downloaded: int, failed: int, run_date: date | None = None) -> None:
        """Final counts for a run; same upsert as :meth:`record_progress`."""
        self.record_progress(downloaded, failed, run_date=run_date)

    def reset(self) -> None:
        with _STORAGE_LOCK:
            self._save(StatsData())
        log.info("Trailer stats reset")

    def get_stats(self) -> TrailerStats:
        with _STORAGE_LOCK:
            data = self._load()
        now = self._clock().astimezone(timezone.utc)

        def downloaded_since(days: int) -> int:
            cutoff = now - timedelta(days=days)
            total = 0
            for run in data.runs:
                day = run.day
                if day is None:
                    continue
                if datetime(day.year, day.month, day.day, tzinfo=timezone.utc) >= cutoff:
                    total += run.downloaded
            return total

        last = data.runs[-1] if data.runs else None
        return TrailerStats(
            total_downloaded=max(data.total_downloaded, data.folders_with_trailer),
            total_failed=data.total_failed,
            total_folders=data.total_folders,
            folders_with_trailer=data.folders_with_trailer,
            last_7_days=downloaded_since(7),
            last_30_days=downloaded_since(30),
            last_365_days=downloaded_since(365),
            last_run_date=last.date if last else None,
            last_run_downloaded=last.downloaded if last else 0,
            last_run_failed=last.failed if last else 0,
            total_runs=len(data.runs),
        )
