"""Domain errors for WHMCS Installer."""


class InstallerError(RuntimeError):
    """Raised when an install or uninstall cannot continue safely."""


class PreconditionError(InstallerError):
    """The hosting environment is not ready (database, docroot, scheduling)."""


class ValidationError(InstallerError):
    """A required install option is missing or malformed."""


class ResolutionError(InstallerError):
    """The requested version is unknown or has no download URL."""


class FetchError(InstallerError):
    """Downloading or unpacking the release archive failed."""


class ProvisioningError(InstallerError):
    """The application database could not be created."""


class NativeInstallerError(InstallerError):
    """The bundled installer failed, timed out or reported no success."""


class SchedulingError(InstallerError):
    """A scheduled job could not be added or removed."""


class CommandError(InstallerError):
    """An external command could not be executed or exited non-zero."""
