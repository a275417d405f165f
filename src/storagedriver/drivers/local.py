"""Local disk (or mounted network drive) driver."""

import logging
import os
import shutil
from datetime import datetime
from datetime import timezone

from storagedriver import paths
from storagedriver.entry import Dir
from storagedriver.registry import register_driver
from storagedriver.utils.errors import ConfigurationError

from .base import Driver


logger = logging.getLogger(__name__)


class LocalDriver(Driver):
    """Driver mapping every operation 1:1 onto the host filesystem.

    File content is read and written in place, so localize and save_remote
    have nothing to do.
    """

    protocol = "NFS"
    description = "Local disk or mounted network drive"
    local = True

    def __init__(self, location: str):
        if not os.path.isdir(location):
            raise ConfigurationError(f"Storage location '{location}' does not exist")
        super().__init__(os.path.abspath(location))

    def mkdir(self, path: str) -> Dir | None:
        if not self.dir_exists(path):
            try:
                os.mkdir(self.abspath(path))
            except OSError as e:
                logger.warning(f"Could not create directory {path}: {e}")
        return self.dir(path) if self.dir_exists(path) else None

    def mkpath(self, path: str) -> Dir | None:
        try:
            os.makedirs(self.abspath(path), exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create directory tree {path}: {e}")
        return self.dir(path) if self.dir_exists(path) else None

    def exists(self, path: str) -> bool:
        return os.path.exists(self.abspath(path))

    def file_exists(self, path: str) -> bool:
        return os.path.isfile(self.abspath(path))

    def dir_exists(self, path: str) -> bool:
        return os.path.isdir(self.abspath(path))

    def is_file(self, path: str) -> bool:
        return os.path.isfile(self.abspath(path))

    def delete(self, path: str) -> bool:
        target = self.abspath(path)
        if not os.path.lexists(target):
            return False
        try:
            if os.path.isdir(target) and not os.path.islink(target):
                os.rmdir(target)
            else:
                os.remove(target)
        except OSError as e:
            logger.warning(f"Could not delete {path}: {e}")
            return False
        return True

    def delete_tree(self, path: str) -> bool:
        target = self.abspath(path)
        if not os.path.isdir(target) or os.path.islink(target):
            return self.delete(path)
        try:
            shutil.rmtree(target)
        except OSError as e:
            logger.warning(f"Could not delete tree {path}: {e}")
            return False
        return True

    def mtime(self, path: str) -> datetime | None:
        try:
            return datetime.fromtimestamp(os.stat(self.abspath(path)).st_mtime, tz=timezone.utc)
        except OSError:
            return None

    def size(self, path: str) -> int:
        try:
            return os.stat(self.abspath(path)).st_size
        except OSError:
            return 0

    def rename(self, from_path: str, to_path: str) -> str | None:
        try:
            os.rename(self.abspath(from_path), self.abspath(to_path))
        except OSError as e:
            logger.warning(f"Could not rename {from_path} to {to_path}: {e}")
            return None
        return paths.safepath(to_path)

    def symlink(self, from_path: str, to_path: str) -> None:
        """Create a link at to_path pointing to from_path, both under root."""
        os.symlink(self.abspath(from_path), self.abspath(to_path))

    def _dir_children(self, path: str) -> list[str]:
        try:
            names = os.listdir(self.abspath(path))
        except (FileNotFoundError, NotADirectoryError):
            return []
        return [paths.join(path, name) for name in names]


register_driver(LocalDriver)
