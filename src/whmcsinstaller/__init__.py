"""
WHMCS Installer - install and uninstall WHMCS on a hosting account
"""

__version__ = "0.1.0"

from .core import InstallOrchestrator
from .errors import InstallerError

__all__ = ["InstallOrchestrator", "InstallerError"]
