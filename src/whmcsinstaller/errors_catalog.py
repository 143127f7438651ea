"""Actionable error catalog for WHMCS Installer."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "database_unavailable": {
        "what": "Cannot install {app}: database unavailable.",
        "next": "Enable MySQL for the account (or set `database_enabled`) and retry.",
    },
    "docroot_not_found": {
        "what": "Cannot install {app}: document root not found for `{target}`.",
        "next": "Create the site directory under `docroot_base` or check the hostname/path.",
    },
    "scheduling_not_permitted": {
        "what": "Cannot install {app}: scheduling not permitted for this account.",
        "next": "An administrator must permit crontab access for the account.",
    },
    "scheduling_enable_failed": {
        "what": "Cannot install {app}: failed to enable scheduling.",
        "next": "Check `scheduling_enable_command` and the crontab service status.",
    },
    "license_required": {
        "what": "A {app} license key is required.",
        "next": "Pass `--license-key` with a valid license.",
    },
    "unknown_version": {
        "what": "Version {version} is not available in the release catalog.",
        "next": "Run `whmcsinstaller versions` to list installable versions.",
    },
    "no_install_url": {
        "what": "Release {version} has no install URL.",
        "next": "Invalidate the release cache or retry later.",
    },
    "insecure_http": {
        "what": "{label} uses insecure HTTP.",
        "next": "Switch to HTTPS or set `allow_insecure_http` only for trusted endpoints.",
    },
    "native_installer_failed": {
        "what": "The {app} installer did not complete successfully.",
        "next": "Inspect the installer output and `{installer_dir}`, then uninstall and retry.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
