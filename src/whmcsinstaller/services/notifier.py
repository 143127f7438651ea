"""Install-complete notifications."""

from whmcsinstaller.constants import APP_NAME


class ConsoleNotifier:
    """Reports new installs to the account owner on the console."""

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def notify_installed(self, hostname: str, path: str, options):
        location = f"{hostname}/{path}".rstrip("/")
        self.logger.info("%s %s installed at %s", APP_NAME, options.version, location)

        self.console.print(f"[bold green]{APP_NAME} {options.version} installed![/bold green]")
        self.console.print(f"  Admin URL: https://{location}/admin/")
        self.console.print(f"  Username:  {options.user}")
        self.console.print(f"  Password:  {options.password}")
