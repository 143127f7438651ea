"""Run journal recording install state transitions."""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class InstallJournal:
    """Collects per-run state transitions and optionally writes them as JSON.

    Entries carry step names, timings and error messages only; credentials
    never enter the journal.
    """

    def __init__(self, logger, journal_file: Optional[str] = None):
        self.journal_file = journal_file
        self.logger = logger
        self.journal: Dict[str, Any] = {}
        self.reset()

    def reset(self):
        self.journal = {
            "run_id": None,
            "action": None,
            "target": None,
            "status": "pending",
            "started_at": None,
            "finished_at": None,
            "duration_seconds": None,
            "steps": [],
            "error": None,
        }

    def start_run(self, run_id: str, action: str, target: Dict[str, Any]):
        self.reset()
        self.journal["run_id"] = run_id
        self.journal["action"] = action
        self.journal["target"] = target
        self.journal["status"] = "running"
        self.journal["started_at"] = self._now()
        self.write()

    def step_started(self, step_name: str):
        self.journal["steps"].append(
            {
                "name": step_name,
                "status": "running",
                "started_at": self._now(),
                "finished_at": None,
                "duration_seconds": None,
                "error": None,
            }
        )
        self.write()

    def step_finished(self, step_name: str, status: str, error: Optional[str] = None):
        for step in reversed(self.journal["steps"]):
            if step["name"] == step_name and step["status"] == "running":
                step["status"] = status
                step["finished_at"] = self._now()
                step["error"] = error
                step["duration_seconds"] = self._duration(step["started_at"], step["finished_at"])
                break
        self.write()

    def finalize(self, status: str, error: Optional[str] = None):
        self.journal["status"] = status
        self.journal["finished_at"] = self._now()
        if self.journal.get("started_at"):
            self.journal["duration_seconds"] = self._duration(
                self.journal["started_at"],
                self.journal["finished_at"],
            )
        self.journal["error"] = error
        self.write()

    @property
    def states(self):
        return [step["name"] for step in self.journal["steps"]]

    def write(self):
        if not self.journal_file:
            return

        directory = os.path.dirname(self.journal_file) or "."
        temp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix="install-journal-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.journal, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.journal_file)
        except OSError as exc:
            self.logger.warning("Could not write journal file '%s': %s", self.journal_file, exc)
            if temp_path is None:
                return
            try:
                os.remove(temp_path)
            except OSError:
                pass

    @staticmethod
    def _duration(started_at: str, finished_at: str) -> float:
        return (
            datetime.fromisoformat(finished_at) - datetime.fromisoformat(started_at)
        ).total_seconds()

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
