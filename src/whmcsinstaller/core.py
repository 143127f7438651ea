import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import requests
from packaging import version
from rich.console import Console

from .constants import (
    ACL_MAX,
    ADMIN_PASSWORD_LENGTH,
    ADMIN_USERNAME,
    APP_NAME,
    APP_TYPE,
    ENCRYPTION_HASH_LENGTH,
    MIN_CONNECTION_LIMIT,
)
from .errors import (
    FetchError,
    InstallerError,
    PreconditionError,
    ProvisioningError,
    ResolutionError,
    SchedulingError,
)
from .errors_catalog import actionable_error
from .models import (
    AdminCredentials,
    DatabaseCredentials,
    InstallerSettings,
    InstallOptions,
    InstallResult,
    InstallState,
    Release,
    ScheduledJob,
)
from .services.archive import ArchiveService
from .services.cache import JsonFileCache, MemoryCache
from .services.command_runner import CommandRunner
from .services.credentials import CredentialGenerator
from .services.database import DatabaseProvisioner
from .services.download import DownloadService
from .services.filesystem import FileSystemService
from .services.fortification import FortificationService
from .services.journal import InstallJournal
from .services.lifecycle import WebappLifecycle
from .services.metadata import MetadataStore
from .services.native_installer import NativeInstallerService
from .services.notifier import ConsoleNotifier
from .services.release_catalog import ReleaseCatalog
from .services.scheduler import CrontabScheduler
from .services.uninstall import UninstallOrchestrator
from .services.validation import ValidationService
from .services.version_probe import VersionProbe

console = Console()
logger = logging.getLogger("whmcsinstaller")


@dataclass
class _InstallRun:
    options: InstallOptions
    docroot: Optional[str] = None
    release: Optional[Release] = None
    database: Optional[DatabaseCredentials] = None


class InstallOrchestrator:
    """Drives WHMCS install and uninstall against a hosting account.

    Install is a fixed sequence of states; the first failing state stops
    the run and nothing that already happened is rolled back. Use
    `uninstall()` to clean up after a failed install.
    """

    STEPS = (
        (InstallState.VALIDATING, "Validating environment", "_validate"),
        (InstallState.RESOLVING_RELEASE, "Resolving release", "_resolve_release"),
        (InstallState.FETCHING, "Fetching release", "_fetch_release"),
        (InstallState.PROVISIONING_DATABASE, "Provisioning database", "_provision_database"),
        (InstallState.RUNNING_NATIVE_INSTALLER, "Running installer", "_run_native_installer"),
        (InstallState.SCHEDULING_JOB, "Scheduling cron job", "_schedule_job"),
        (InstallState.FINALIZING, "Recording installation", "_finalize"),
    )

    def __init__(
        self,
        settings: Optional[InstallerSettings] = None,
        cache=None,
        release_catalog=None,
        lifecycle=None,
        database=None,
        fetcher=None,
        scheduler=None,
        fortification=None,
        native_installer=None,
        metadata_store=None,
        notifier=None,
        credential_generator=None,
        journal=None,
        requests_module=requests,
    ):
        self.settings = settings or InstallerSettings()
        self.state: Optional[InstallState] = None

        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.archive_service = ArchiveService()
        self.validation_service = ValidationService(
            allow_insecure_http=self.settings.allow_insecure_http,
        )
        self.command_runner = CommandRunner(logger=logger)
        self.credential_generator = credential_generator or CredentialGenerator()
        self.metadata_store = metadata_store or MetadataStore(
            metadata_file=self.settings.metadata_file,
            logger=logger,
        )
        self.journal = journal or InstallJournal(
            logger=logger,
            journal_file=self.settings.journal_file,
        )

        if cache is None:
            cache = (
                JsonFileCache(self.settings.cache_file, logger=logger)
                if self.settings.cache_file
                else MemoryCache()
            )
        self.release_catalog = release_catalog or ReleaseCatalog(
            cache=cache,
            logger=logger,
            requests_module=requests_module,
            url=self.settings.version_check_url,
            timeout=self.settings.download_timeout,
        )
        self.database = database or DatabaseProvisioner(
            logger=logger,
            command_runner=self.command_runner,
            credential_generator=self.credential_generator,
            mysql_binary=self.settings.mysql_binary,
            host=self.settings.mysql_host,
            defaults_file=self.settings.mysql_defaults_file,
            enabled=self.settings.database_enabled,
        )
        self.fetcher = fetcher or DownloadService(
            validation_service=self.validation_service,
            archive_service=self.archive_service,
            filesystem_service=self.filesystem_service,
            logger=logger,
            console=console,
            requests_module=requests_module,
            timeout=self.settings.download_timeout,
            retry_count=self.settings.retry_count,
            retry_backoff_seconds=self.settings.retry_backoff_seconds,
        )
        self.scheduler = scheduler or CrontabScheduler(
            logger=logger,
            command_runner=self.command_runner,
            crontab_binary=self.settings.crontab_binary,
            permitted=self.settings.scheduling_permitted,
            enabled=self.settings.scheduling_enabled,
            enable_command=self.settings.scheduling_enable_command,
        )
        self.fortification = fortification or FortificationService(
            logger=logger,
            filesystem_service=self.filesystem_service,
            metadata_store=self.metadata_store,
        )
        self.native_installer = native_installer or NativeInstallerService(
            logger=logger,
            command_runner=self.command_runner,
            filesystem_service=self.filesystem_service,
            php_binary=self.settings.php_binary,
        )
        self.notifier = notifier or ConsoleNotifier(logger=logger, console=console)
        self.lifecycle = lifecycle or WebappLifecycle(
            logger=logger,
            docroot_base=self.settings.docroot_base,
            validation_service=self.validation_service,
            archive_service=self.archive_service,
            filesystem_service=self.filesystem_service,
            metadata_store=self.metadata_store,
            database_provisioner=self.database,
        )
        self.uninstaller = UninstallOrchestrator(
            logger=logger,
            scheduler=self.scheduler,
            lifecycle=self.lifecycle,
        )
        self.version_probe = VersionProbe(
            lifecycle=self.lifecycle,
            metadata_store=self.metadata_store,
        )

    @staticmethod
    def effective_connection_limit(requested: int) -> int:
        return max(int(requested or 0), MIN_CONNECTION_LIMIT)

    def install(
        self,
        hostname: str,
        path: str = "",
        opts: Optional[Union[Mapping[str, Any], InstallOptions]] = None,
    ) -> InstallResult:
        if isinstance(opts, InstallOptions):
            options = opts
        else:
            opts = dict(opts or {})
            options = InstallOptions(
                hostname=hostname,
                path=path or "",
                version=str(opts.get("version") or ""),
                license_key=str(opts.get("license_key") or ""),
                user=opts.get("user"),
                password=opts.get("password"),
            )
        return self._install(options)

    def _install(self, options: InstallOptions) -> InstallResult:
        self.state = None
        run = _InstallRun(options=options)
        run_id = uuid.uuid4().hex[:10]
        self.journal.start_run(
            run_id=run_id,
            action="install",
            target={"hostname": options.hostname, "path": options.path, "version": options.version},
        )
        logger.info("Starting %s install on %s/%s", APP_NAME, options.hostname, options.path)

        try:
            for state, label, handler_name in self.STEPS:
                self._run_step(state, label, getattr(self, handler_name), run)
        except InstallerError as exc:
            return self._fail(run, exc)
        except Exception as exc:
            logger.exception("Unexpected error")
            return self._fail(run, exc)

        self._transition(InstallState.DONE)
        self._complete(run)
        self.journal.finalize("success")
        console.print(f"[bold green]{APP_NAME} installation complete.[/bold green]")
        return InstallResult(success=True, state=InstallState.DONE, options=run.options)

    def _fail(self, run: _InstallRun, exc: Exception) -> InstallResult:
        failed_state = self.state
        self._transition(InstallState.FAILED)
        console.print(f"[bold red]Error:[/bold red] {exc}")
        logger.error(str(exc))
        self.journal.finalize("failed", error=str(exc))
        return InstallResult(
            success=False,
            state=InstallState.FAILED,
            error=exc,
            failed_state=failed_state,
            options=run.options,
        )

    def _transition(self, state: InstallState):
        logger.debug("Install state: %s -> %s", self.state.value if self.state else "<start>", state.value)
        self.state = state

    def _run_step(self, state: InstallState, label: str, callback, run: _InstallRun):
        self._transition(state)
        self.journal.step_started(state.value)
        console.print(f"[blue]{label}...[/blue]")

        try:
            callback(run)
        except Exception as exc:
            self.journal.step_finished(state.value, "failed", error=str(exc))
            raise

        self.journal.step_finished(state.value, "success")

    def _validate(self, run: _InstallRun):
        options = run.options
        if not self.database.enabled():
            raise PreconditionError(actionable_error("database_unavailable", app=APP_NAME))

        self.validation_service.validate_target(options)
        run.docroot = self.lifecycle.document_root(options.hostname, options.path)
        if not run.docroot:
            raise PreconditionError(
                actionable_error(
                    "docroot_not_found",
                    app=APP_NAME,
                    target=f"{options.hostname}/{options.path}".rstrip("/"),
                )
            )

        self.validation_service.validate_options(options)

        if not self.scheduler.permitted():
            raise PreconditionError(actionable_error("scheduling_not_permitted", app=APP_NAME))

        if not self.scheduler.enabled() and not self.scheduler.set_enabled(True):
            raise PreconditionError(actionable_error("scheduling_enable_failed", app=APP_NAME))

    def _resolve_release(self, run: _InstallRun):
        requested = run.options.version
        release = self.release_catalog.resolve(requested)
        if release is None:
            raise ResolutionError(actionable_error("unknown_version", version=requested))
        if not release.url:
            raise ResolutionError(actionable_error("no_install_url", version=requested))
        run.release = release

    def _fetch_release(self, run: _InstallRun):
        try:
            fetched = self.fetcher.fetch(run.release.url, run.docroot, overwrite=True)
        except FetchError:
            raise
        except (InstallerError, OSError) as exc:
            raise FetchError(f"Failed to fetch {run.release.url}: {exc}") from exc

        if not fetched:
            raise FetchError(f"Failed to fetch {run.release.url}")

    def _provision_database(self, run: _InstallRun):
        limit = self.effective_connection_limit(self.settings.connection_limit)
        try:
            credentials = self.database.create(self.settings.account, run.options.hostname, limit)
        except ProvisioningError:
            raise
        except InstallerError as exc:
            raise ProvisioningError(f"Failed to create database: {exc}") from exc

        if credentials.connection_limit < MIN_CONNECTION_LIMIT:
            raise ProvisioningError(
                f"Database {credentials.database} was created with connection limit "
                f"{credentials.connection_limit}, below the minimum of {MIN_CONNECTION_LIMIT}."
            )
        run.database = credentials

    def _run_native_installer(self, run: _InstallRun):
        options = run.options
        admin = AdminCredentials(
            username=options.user or ADMIN_USERNAME,
            password=options.password or self.credential_generator.generate(ADMIN_PASSWORD_LENGTH),
        )
        run.options = options.with_admin(admin.username, admin.password)

        payload = self.native_installer.build_payload(
            admin=admin,
            license_key=options.license_key,
            database=run.database,
            encryption_hash=self.credential_generator.generate(ENCRYPTION_HASH_LENGTH),
        )
        self.native_installer.run(run.docroot, payload, timeout=self.settings.installer_timeout)
        self.native_installer.remove_installer(run.docroot)

    def _schedule_job(self, run: _InstallRun):
        job = ScheduledJob.for_docroot(run.docroot, user=self.lifecycle.docroot_user(run.docroot))
        try:
            added = self.scheduler.add_job(job.schedule, job.command, job.user)
        except SchedulingError:
            raise
        except InstallerError as exc:
            raise SchedulingError(f"Could not add scheduled job: {exc}") from exc

        if not added:
            raise SchedulingError(f"Could not add scheduled job: {job.line}")

    def _finalize(self, run: _InstallRun):
        record = {
            "type": APP_TYPE,
            "version": run.release.version,
            "hostname": run.options.hostname,
            "path": run.options.path,
            "options": run.options.to_metadata(),
            "database": run.database.to_metadata(),
        }
        if not self.metadata_store.write(run.docroot, record):
            raise InstallerError(f"Could not record installation metadata for {run.docroot}")

    def _complete(self, run: _InstallRun):
        self.journal.step_started(InstallState.DONE.value)
        warnings: List[str] = []

        try:
            if not self.fortification.apply(run.docroot, ACL_MAX):
                warnings.append(f"could not apply '{ACL_MAX}' permission profile")
        except (InstallerError, OSError) as exc:
            warnings.append(f"could not apply '{ACL_MAX}' permission profile: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error while applying permission profile")
            warnings.append(f"could not apply '{ACL_MAX}' permission profile: {exc}")

        try:
            self.notifier.notify_installed(run.options.hostname, run.options.path, run.options)
        except (InstallerError, OSError) as exc:
            warnings.append(f"notification failed: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error while notifying")
            warnings.append(f"notification failed: {exc}")

        for warning in warnings:
            logger.warning("Post-install: %s", warning)
        self.journal.step_finished(
            InstallState.DONE.value,
            "warning" if warnings else "success",
            error="; ".join(warnings) or None,
        )

    def uninstall(self, hostname: str, path: str = "", delete_scope: str = "all") -> bool:
        self.journal.start_run(
            run_id=uuid.uuid4().hex[:10],
            action="uninstall",
            target={"hostname": hostname, "path": path, "delete_scope": delete_scope},
        )
        try:
            removed = self.uninstaller.uninstall(hostname, path, delete_scope)
        except InstallerError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            self.journal.finalize("failed", error=str(exc))
            return False

        self.journal.finalize("success" if removed else "failed")
        return removed

    def fortify(self, hostname: str, path: str = "", profile: str = ACL_MAX) -> bool:
        """Switches an existing install to another permission profile."""
        try:
            docroot = self.lifecycle.document_root(hostname, path)
        except InstallerError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return False

        if docroot is None:
            logger.error("Cannot fortify %s/%s: document root not found", hostname, path)
            return False

        if not self.version_probe.is_installed(hostname, path):
            logger.error("Cannot fortify %s/%s: %s is not installed there", hostname, path, APP_NAME)
            return False

        return self.fortification.apply(docroot, profile)

    def valid(self, hostname: str, path: str = "") -> bool:
        return self.version_probe.is_installed(hostname, path)

    def get_version(self, hostname: str, path: str = "") -> Optional[str]:
        return self.version_probe.get_version(hostname, path)

    def get_versions(self) -> List[str]:
        return self.release_catalog.list_versions()

    def get_release_data(self) -> Dict[str, Dict[str, Any]]:
        return self.release_catalog.get_release_data()

    def upgrade_available(self, hostname: str, path: str = "") -> Optional[str]:
        """Returns the newest catalog version if it is newer than the installed one."""
        installed = self.get_version(hostname, path)
        latest = self.release_catalog.latest_version()
        if not installed or not latest:
            return None

        try:
            if version.parse(latest) > version.parse(installed):
                return latest
        except version.InvalidVersion:
            logger.warning("Cannot compare versions %s and %s", installed, latest)
        return None

    def invalidate_release_cache(self):
        self.release_catalog.invalidate()
