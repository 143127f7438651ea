import logging
import os

import click
from rich.logging import RichHandler

from .constants import ACL_MAX
from .core import InstallOrchestrator
from .errors import InstallerError
from .models import ACL_PROFILES
from .services.config_loader import ConfigLoader

DEFAULT_CONFIG_FILE = ".whmcsinstaller.yml"

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _configure_logging(verbose: bool, log_file):
    logger = logging.getLogger("whmcsinstaller")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _build_orchestrator(ctx: click.Context) -> InstallOrchestrator:
    try:
        return InstallOrchestrator(settings=ctx.obj["settings"])
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.pass_context
def main(ctx, config, verbose, log_file):
    """Install and manage WHMCS on a hosting account."""
    resolved_config = config
    if resolved_config is None:
        default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
        if os.path.exists(default_config_path):
            resolved_config = default_config_path

    try:
        settings = ConfigLoader().load_settings(
            resolved_config,
            verbose=verbose,
            log_file=log_file,
        )
    except (InstallerError, TypeError) as exc:
        raise click.ClickException(str(exc)) from exc

    _configure_logging(bool(settings.verbose), settings.log_file)
    ctx.obj = {"settings": settings}


@main.command()
@click.argument("hostname")
@click.argument("path", required=False, default="")
@click.option("--version", "release_version", required=True, help="WHMCS version to install")
@click.option("--license-key", required=True, help="WHMCS license key")
@click.option("--user", required=False, help="Admin username (default: admin)")
@click.option("--password", required=False, help="Admin password (generated when omitted)")
@click.pass_context
def install(ctx, hostname, path, release_version, license_key, user, password):
    """Install WHMCS into HOSTNAME/PATH."""
    orchestrator = _build_orchestrator(ctx)
    result = orchestrator.install(
        hostname,
        path,
        {
            "version": release_version,
            "license_key": license_key,
            "user": user,
            "password": password,
        },
    )
    raise SystemExit(0 if result else 1)


@main.command()
@click.argument("hostname")
@click.argument("path", required=False, default="")
@click.option(
    "--delete",
    "delete_scope",
    type=click.Choice(["all", "files", "db", "none"]),
    default="all",
    show_default=True,
    help="What to remove besides the scheduled job and metadata.",
)
@click.pass_context
def uninstall(ctx, hostname, path, delete_scope):
    """Remove WHMCS from HOSTNAME/PATH."""
    orchestrator = _build_orchestrator(ctx)
    raise SystemExit(0 if orchestrator.uninstall(hostname, path, delete_scope) else 1)


@main.command()
@click.argument("hostname")
@click.argument("path", required=False, default="")
@click.option(
    "--profile",
    type=click.Choice(sorted(ACL_PROFILES)),
    default=ACL_MAX,
    show_default=True,
    help="Permission profile to apply.",
)
@click.pass_context
def fortify(ctx, hostname, path, profile):
    """Apply a permission profile to the WHMCS install at HOSTNAME/PATH."""
    orchestrator = _build_orchestrator(ctx)
    raise SystemExit(0 if orchestrator.fortify(hostname, path, profile) else 1)


@main.command()
@click.argument("hostname")
@click.argument("path", required=False, default="")
@click.pass_context
def version(ctx, hostname, path):
    """Print the installed WHMCS version."""
    installed = _build_orchestrator(ctx).get_version(hostname, path)
    if installed is None:
        raise click.ClickException(f"WHMCS is not installed at {hostname}/{path}".rstrip("/"))
    click.echo(installed)


@main.command()
@click.option("--refresh", is_flag=True, help="Drop the cached release data first.")
@click.pass_context
def versions(ctx, refresh):
    """List installable WHMCS versions."""
    orchestrator = _build_orchestrator(ctx)
    if refresh:
        orchestrator.invalidate_release_cache()
    available = orchestrator.get_versions()
    if not available:
        raise click.ClickException("No WHMCS versions available from the release catalog.")
    for item in available:
        click.echo(item)


@main.command("check-update")
@click.argument("hostname")
@click.argument("path", required=False, default="")
@click.pass_context
def check_update(ctx, hostname, path):
    """Report whether a newer WHMCS release exists for HOSTNAME/PATH."""
    newer = _build_orchestrator(ctx).upgrade_available(hostname, path)
    if newer:
        click.echo(f"Update available: {newer}")
    else:
        click.echo("Up to date.")


if __name__ == "__main__":
    main()
