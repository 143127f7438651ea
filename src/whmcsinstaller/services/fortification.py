"""Filesystem permission profiles ("fortification")."""

import os

from whmcsinstaller.constants import DIR_MODE, FILE_MODE, WRITABLE_DIR_MODE, WRITABLE_FILE_MODE
from whmcsinstaller.models import ACL_PROFILES


class FortificationService:
    """Locks a docroot down so only the profile's paths stay group-writable."""

    def __init__(self, logger, filesystem_service, metadata_store=None):
        self.logger = logger
        self.filesystem_service = filesystem_service
        self.metadata_store = metadata_store

    def apply(self, docroot: str, profile_name: str) -> bool:
        profile = ACL_PROFILES.get(profile_name)
        if profile is None:
            self.logger.error(
                "Unknown permission profile '%s'. Available: %s",
                profile_name,
                ", ".join(sorted(ACL_PROFILES)),
            )
            return False

        if not os.path.isdir(docroot):
            self.logger.error("Cannot fortify missing docroot: %s", docroot)
            return False

        self.logger.info("Applying '%s' permission profile to %s", profile.name, docroot)
        self.filesystem_service.set_tree_permissions(docroot, dir_mode=DIR_MODE, file_mode=FILE_MODE)

        for relative_path in profile.writable_paths:
            target = os.path.join(docroot, relative_path)
            if not os.path.exists(target):
                self.logger.debug("Skipping missing writable path: %s", target)
                continue
            self.filesystem_service.set_tree_permissions(
                target,
                dir_mode=WRITABLE_DIR_MODE,
                file_mode=WRITABLE_FILE_MODE,
            )

        if self.metadata_store is not None:
            self.metadata_store.update(docroot, fortify=profile.name)
        return True
