"""Filesystem helpers for WHMCS Installer."""

import logging
import os
import shutil
import sys

from rich.console import Console


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except OSError as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def set_tree_permissions(self, root: str, dir_mode: int, file_mode: int):
        if sys.platform == "win32" or not os.path.exists(root):
            return

        if not os.path.isdir(root):
            self.set_permissions(root, file_mode)
            return

        self.set_permissions(root, dir_mode)
        for current_root, dirs, files in os.walk(root):
            for directory in dirs:
                self.set_permissions(os.path.join(current_root, directory), dir_mode)
            for file_name in files:
                self.set_permissions(os.path.join(current_root, file_name), file_mode)

    def copy_tree(self, source: str, destination: str):
        os.makedirs(destination, exist_ok=True)
        for item in os.listdir(source):
            src_path = os.path.join(source, item)
            dst_path = os.path.join(destination, item)
            if os.path.isdir(src_path):
                shutil.copytree(src_path, dst_path, dirs_exist_ok=True)
            else:
                shutil.copy2(src_path, dst_path)

    def cleanup_dir(self, path: str) -> bool:
        if not os.path.exists(path):
            return True

        try:
            shutil.rmtree(path)
            self.logger.debug("Removed directory: %s", path)
            return True
        except OSError as exc:
            message = f"Warning: Could not remove {path}: {exc}"
            self.console.print(f"[yellow]{message}[/yellow]")
            self.logger.warning(message)
            return False

    def clear_dir(self, path: str) -> bool:
        """Removes the contents of `path` but keeps the directory itself."""
        if not os.path.isdir(path):
            return True

        cleared = True
        for item in os.listdir(path):
            item_path = os.path.join(path, item)
            if os.path.isdir(item_path) and not os.path.islink(item_path):
                cleared = self.cleanup_dir(item_path) and cleared
                continue
            try:
                os.remove(item_path)
            except OSError as exc:
                self.logger.warning("Could not remove %s: %s", item_path, exc)
                cleared = False
        return cleared

    def owner_name(self, path: str) -> str:
        uid = os.stat(path).st_uid
        try:
            import pwd

            return pwd.getpwuid(uid).pw_name
        except (ImportError, KeyError):
            return str(uid)
