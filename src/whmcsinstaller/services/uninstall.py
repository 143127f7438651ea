"""Uninstall workflow: drop the scheduled job, then sweep the application."""

from whmcsinstaller.errors import InstallerError
from whmcsinstaller.models import ScheduledJob


class UninstallOrchestrator:
    def __init__(self, logger, scheduler, lifecycle):
        self.logger = logger
        self.scheduler = scheduler
        self.lifecycle = lifecycle

    def uninstall(self, hostname: str, path: str = "", delete_scope: str = "all") -> bool:
        docroot = self.lifecycle.document_root(hostname, path)

        # The job goes first so cron never runs against a half-removed tree.
        if docroot is None:
            self.logger.warning("No document root for %s/%s; skipping job removal.", hostname, path)
        else:
            job = ScheduledJob.for_docroot(docroot, user=self.lifecycle.docroot_user(docroot))
            try:
                self.scheduler.remove_job(job.schedule, job.command, job.user)
            except InstallerError as exc:
                self.logger.warning("Could not remove scheduled job '%s': %s", job.line, exc)

        return self.lifecycle.uninstall(hostname, path, delete_scope)
