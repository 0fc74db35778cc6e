# -----------------------------------------------------------------------------
# THE FLIGHT RECORDER - PUBLISH JOURNAL
# -----------------------------------------------------------------------------
# Responsibility: Leave a trail for every publish cycle, pass or fail.
#
# Each run writes <journal_dir>/<run_id>.json with the stage transitions,
# the revisions involved and the final verdict. The default journal lives
# inside .git/, so it is never committed, never cleared by a publish and
# survives branch switches.
# -----------------------------------------------------------------------------

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console

console = Console()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class FlightLogEntry:
    """A single entry in the flight recorder."""

    timestamp: str
    event: str
    details: str | None = None


@dataclass
class RunRecord:
    """Everything written for one run."""

    run_id: str
    started_at: str
    status: str = "running"
    stage: str = "idle"
    summary: dict = field(default_factory=dict)
    events: list[FlightLogEntry] = field(default_factory=list)


class FlightRecorder:
    """
    Publish journal. One JSON file per run.

    A disabled recorder (folder=None) accepts every call and writes nothing.
    """

    def __init__(self, folder: Path | None, run_id: str) -> None:
        self.folder = Path(folder) if folder is not None else None
        self.record = RunRecord(run_id=run_id, started_at=_now())

    @property
    def path(self) -> Path | None:
        if self.folder is None:
            return None
        return self.folder / f"{self.record.run_id}.json"

    def log(self, event: str, details: str | None = None) -> None:
        """Record an event in the flight recorder."""
        self.record.events.append(FlightLogEntry(timestamp=_now(), event=event, details=details))

    def stage(self, stage: str) -> None:
        self.record.stage = stage
        self.log("STAGE", stage)

    def finalize(self, status: str, **summary) -> None:
        """Write the run record to disk."""
        self.record.status = status
        self.record.summary.update(summary)
        self.log("FINISHED", status)

        if self.path is None:
            return
        try:
            self.folder.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(asdict(self.record), f, indent=2, default=str)
        except OSError as e:
            # The journal is a side channel; the publish verdict stands without it
            console.print(f"[yellow][RECORDER] Could not write {self.path}: {e}[/yellow]")
            return
        console.print(f"[dim][RECORDER] Run journal saved: {self.path}[/dim]")


def list_runs(folder: Path, limit: int = 10) -> list[dict]:
    """
    Most recent run records, newest first.

    Unreadable files are skipped with a warning.
    """
    folder = Path(folder)
    if not folder.is_dir():
        return []

    runs = []
    for path in folder.glob("*.json"):
        try:
            with open(path) as f:
                runs.append(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            console.print(f"[yellow][RECORDER] Skipping {path.name}: {e}[/yellow]")

    runs.sort(key=lambda r: (r.get("started_at", ""), r.get("run_id", "")), reverse=True)
    return runs[:limit]
