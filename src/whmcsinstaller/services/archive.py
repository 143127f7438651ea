"""Release archive unpacking for WHMCS Installer."""

import os
import shutil
import zipfile
from pathlib import Path
from typing import List, Tuple

from whmcsinstaller.errors import FetchError

SYMLINK_TYPE = 0o120000


class ArchiveService:
    """Unpacks release zips without letting an entry escape its destination."""

    def is_within_dir(self, base_dir: Path, candidate: Path) -> bool:
        try:
            return os.path.commonpath([str(base_dir), str(candidate)]) == str(base_dir)
        except ValueError:
            return False

    def safe_extract_zip(self, zip_path: str, destination_dir: str) -> int:
        """Extracts `zip_path` into `destination_dir` and returns the file count.

        Every entry is checked before anything is written, so a rejected
        archive leaves the destination untouched.
        """
        base = Path(destination_dir).resolve()

        try:
            with zipfile.ZipFile(zip_path, "r") as release_zip:
                plan = [(member, self._target_for(base, member)) for member in release_zip.infolist()]
                return self._extract(release_zip, plan)
        except zipfile.BadZipFile as exc:
            raise FetchError(f"Invalid ZIP archive: {zip_path}") from exc

    def _target_for(self, base: Path, member: zipfile.ZipInfo) -> Path:
        name = member.filename.replace("\\", "/")
        if name.startswith("/") or (len(name) > 1 and name[1] == ":"):
            raise FetchError(f"Release archive entry `{member.filename}` has an absolute path.")

        if (member.external_attr >> 16) & 0o170000 == SYMLINK_TYPE:
            raise FetchError(f"Release archive entry `{member.filename}` is a symbolic link.")

        target = (base / name).resolve()
        if not self.is_within_dir(base, target):
            raise FetchError(
                f"Release archive entry `{member.filename}` points outside the "
                "extraction directory; refusing to unpack."
            )
        return target

    @staticmethod
    def _extract(release_zip: zipfile.ZipFile, plan: List[Tuple[zipfile.ZipInfo, Path]]) -> int:
        files = 0
        for member, target in plan:
            if member.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            with release_zip.open(member, "r") as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            files += 1
        return files

    def unwrap_single_dir(self, extracted_dir: str) -> str:
        """Returns the directory holding the release files.

        Release archives usually wrap everything in one top-level folder
        (`whmcs/`); that folder is the real content root.
        """
        items = [item for item in os.listdir(extracted_dir) if not item.startswith(".")]
        if len(items) == 1:
            single_item_path = os.path.join(extracted_dir, items[0])
            if os.path.isdir(single_item_path):
                return single_item_path
        return extracted_dir
