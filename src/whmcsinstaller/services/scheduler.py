"""Crontab-backed scheduled job management."""

import getpass
import shutil
from typing import List, Optional

from whmcsinstaller.errors import CommandError, SchedulingError
from whmcsinstaller.models import ScheduledJob


class CrontabScheduler:
    """Adds and removes jobs in a user's crontab.

    Jobs are matched by their exact crontab line, so adding an existing job
    is a no-op and removal never touches neighbouring entries.
    """

    def __init__(
        self,
        logger,
        command_runner,
        crontab_binary: str = "crontab",
        permitted: bool = True,
        enabled: bool = True,
        enable_command: Optional[List[str]] = None,
    ):
        self.logger = logger
        self.command_runner = command_runner
        self.crontab_binary = crontab_binary
        self._permitted = permitted
        self._enabled = enabled
        self.enable_command = enable_command

    def permitted(self) -> bool:
        return self._permitted and shutil.which(self.crontab_binary) is not None

    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> bool:
        if enabled and self.enable_command:
            try:
                self.command_runner.run(self.enable_command, check=True, capture_output=True)
            except CommandError as exc:
                self.logger.error("Could not enable task scheduling: %s", exc)
                return False
        self._enabled = enabled
        return True

    def list_jobs(self, user: Optional[str] = None) -> List[str]:
        result = self.command_runner.run(
            self._base_cmd(user) + ["-l"],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            if "no crontab" in (result.stderr or "").lower():
                return []
            raise SchedulingError(
                f"Could not read crontab: {(result.stderr or '').strip() or result.returncode}"
            )
        return [line for line in result.stdout.splitlines() if line.strip()]

    def add_job(self, schedule: str, command: str, user: Optional[str] = None) -> bool:
        job = ScheduledJob(command=command, schedule=schedule, user=user)
        lines = self.list_jobs(user)
        if job.line in lines:
            self.logger.debug("Scheduled job already present: %s", job.line)
            return True

        self._write(lines + [job.line], user)
        self.logger.info("Scheduled job added: %s", job.line)
        return True

    def remove_job(self, schedule: str, command: str, user: Optional[str] = None) -> bool:
        job = ScheduledJob(command=command, schedule=schedule, user=user)
        lines = self.list_jobs(user)
        remaining = [line for line in lines if line != job.line]
        if len(remaining) == len(lines):
            self.logger.debug("No scheduled job to remove: %s", job.line)
            return True

        self._write(remaining, user)
        self.logger.info("Scheduled job removed: %s", job.line)
        return True

    def _write(self, lines: List[str], user: Optional[str]):
        content = "\n".join(lines) + "\n" if lines else ""
        try:
            self.command_runner.run(
                self._base_cmd(user) + ["-"],
                check=True,
                capture_output=True,
                input_text=content,
            )
        except CommandError as exc:
            raise SchedulingError(f"Could not write crontab: {exc}") from exc

    def _base_cmd(self, user: Optional[str]) -> List[str]:
        cmd = [self.crontab_binary]
        if user and user != getpass.getuser():
            cmd += ["-u", user]
        return cmd
