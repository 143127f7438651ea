"""Subprocess execution service for WHMCS Installer."""

import os
import subprocess
import time
from typing import Dict, Iterable, List, Mapping, Optional

from whmcsinstaller.errors import CommandError
from whmcsinstaller.models import ProcessResult


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        env: Optional[Mapping[str, str]] = None,
        input_text: Optional[str] = None,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
        retry_on_returncodes: Optional[Iterable[int]] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout
        max_attempts = max(1, retry_count + 1)
        retry_codes = set(retry_on_returncodes or [])
        process_env = self._merge_env(env)

        for attempt in range(1, max_attempts + 1):
            try:
                result = subprocess.run(
                    cmd,
                    text=True,
                    capture_output=capture_output,
                    timeout=effective_timeout,
                    env=process_env,
                    input=input_text,
                )
            except FileNotFoundError as exc:
                raise CommandError(
                    f"Required command not found: {cmd[0]}. Please install it and try again."
                ) from exc
            except subprocess.TimeoutExpired as exc:
                if attempt < max_attempts:
                    self.logger.warning(
                        "Command timed out on attempt %s/%s. Retrying in %.1fs: %s",
                        attempt,
                        max_attempts,
                        retry_backoff_seconds,
                        cmd_str,
                    )
                    time.sleep(retry_backoff_seconds)
                    continue
                raise CommandError(
                    f"Command timed out after {effective_timeout}s: {cmd_str}"
                ) from exc
            except OSError as exc:
                raise CommandError(f"Failed to execute command: {cmd_str}. {exc}") from exc

            if capture_output and result.stdout:
                self.logger.debug("Command output: %s", result.stdout.strip())

            if result.returncode == 0:
                return result

            stderr = (result.stderr or "").strip() if capture_output else ""
            message = f"Command failed ({result.returncode}): {cmd_str}"
            if stderr:
                message = f"{message}\n{stderr}"

            can_retry = attempt < max_attempts and (
                not retry_codes or result.returncode in retry_codes
            )
            if can_retry:
                self.logger.warning(
                    "Command failed on attempt %s/%s and will be retried in %.1fs.\n%s",
                    attempt,
                    max_attempts,
                    retry_backoff_seconds,
                    message,
                )
                time.sleep(retry_backoff_seconds)
                continue

            if check:
                raise CommandError(message)

            self.logger.warning(message)
            return result

        raise CommandError(f"Command failed after retries: {cmd_str}")

    def run_template(
        self,
        template: List[str],
        path_args: Mapping[str, str],
        env_vars: Optional[Mapping[str, str]] = None,
        stdin_env: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Runs a `%(name)s` argv template.

        Values in `env_vars` travel through the child environment only, so
        they never show up in process listings. When `stdin_env` names one of
        them, its value is also written to the child's stdin.
        """
        cmd = [part % path_args for part in template]
        env_vars = dict(env_vars or {})
        input_text = env_vars.get(stdin_env) if stdin_env else None

        result = self.run(
            cmd,
            check=False,
            capture_output=True,
            timeout=timeout,
            env=env_vars,
            input_text=input_text,
        )
        output = "\n".join(
            chunk.strip() for chunk in (result.stdout, result.stderr) if chunk and chunk.strip()
        )
        return ProcessResult(
            success=result.returncode == 0,
            output=output,
            returncode=result.returncode,
        )

    @staticmethod
    def _merge_env(env: Optional[Mapping[str, str]]) -> Optional[Dict[str, str]]:
        if not env:
            return None
        merged = dict(os.environ)
        merged.update(env)
        return merged
