"""Abstract storage driver contract."""

import logging
import posixpath
import zlib
from abc import ABC
from abc import abstractmethod
from datetime import datetime
from typing import ClassVar

from storagedriver import paths
from storagedriver.entry import Dir
from storagedriver.entry import File


logger = logging.getLogger(__name__)


class Driver(ABC):
    """Storage backend for one protocol.

    Every path argument is interpreted relative to the driver root and
    normalized with paths.safepath, so callers can never reach outside root.
    Subclasses declare protocol, description and local, and pick the File
    and Dir classes their factory methods hand out.
    """

    protocol: ClassVar[str]
    description: ClassVar[str] = ""
    local: ClassVar[bool] = True

    file_class: ClassVar[type[File]] = File
    dir_class: ClassVar[type[Dir]] = Dir

    def __init__(self, location: str):
        self._root = location

    def __repr__(self) -> str:
        return f"{type(self).__name__}(root={self._root!r})"

    @property
    def root(self) -> str:
        return self._root

    @property
    def name(self) -> str:
        """Unique name for this driver instance."""
        return f"{self.protocol}-{paths.base36(zlib.crc32(self._root.encode()))}"

    @property
    def work_dir(self) -> str:
        """Directory under which File entries keep their local content."""
        return self._root

    def abspath(self, path: str) -> str:
        """Join the root with the normalized path."""
        relative = paths.safepath(path).lstrip(paths.SEPARATOR)
        return posixpath.join(self._root, relative) if relative else self._root

    def relpath(self, path: str) -> str:
        """Express a backend absolute path relative to the root.

        Paths outside the root fall back to the root itself.
        """
        normalized = posixpath.normpath(path)
        root = posixpath.normpath(self._root)
        if normalized == root:
            return paths.SEPARATOR
        prefix = root if root.endswith(paths.SEPARATOR) else root + paths.SEPARATOR
        if not normalized.startswith(prefix):
            return paths.SEPARATOR
        return paths.safepath(normalized[len(prefix):])

    # Entry factories

    def file(self, path: str) -> File:
        """Get a File for path; it does not need to exist."""
        return self.file_class(paths.safepath(path), self)

    def dir(self, path: str | None = None) -> Dir:
        """Get a Dir for path (root by default); it does not need to exist."""
        return self.dir_class(paths.safepath(path), self)

    def entry(self, path: str) -> File | Dir | None:
        """Get a File or Dir for an existing path, None if absent."""
        if self.is_file(path):
            return self.file(path)
        if self.dir_exists(path):
            return self.dir(path)
        return None

    def entries(self, path: str | None = None) -> list[str]:
        """List root-relative paths of the immediate children of a directory."""
        return sorted(self._dir_children(paths.safepath(path)))

    def obj_entries(self, path: str | None = None) -> list[File | Dir]:
        children = (self.entry(p) for p in self.entries(path))
        return [e for e in children if e is not None]

    def exists(self, path: str) -> bool:
        return self.file_exists(path) or self.dir_exists(path)

    def move(self, path: str, new_dir: str) -> str | None:
        """Move path into new_dir, creating new_dir first.

        A relative new_dir is taken relative to the parent of path.
        """
        path = paths.safepath(path)
        if not new_dir.startswith(paths.SEPARATOR):
            new_dir = paths.join(paths.dirname(path), new_dir)
        new_path = paths.join(new_dir, paths.basename(path))
        self.dir(paths.dirname(new_path)).touch()
        return self.rename(path, new_path)

    def symlink(self, from_path: str, to_path: str) -> None:
        raise NotImplementedError(f"{self.protocol} driver does not support symlinks")

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # Backend operations

    @abstractmethod
    def mkdir(self, path: str) -> Dir | None:
        """Create a directory whose parent exists."""
        pass

    @abstractmethod
    def mkpath(self, path: str) -> Dir | None:
        """Create a directory and any missing ancestors."""
        pass

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def dir_exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def is_file(self, path: str) -> bool:
        pass

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Delete a file or empty directory; False if absent or refused."""
        pass

    @abstractmethod
    def delete_tree(self, path: str) -> bool:
        """Delete a file or a whole directory tree; False if absent or refused."""
        pass

    @abstractmethod
    def mtime(self, path: str) -> datetime | None:
        pass

    @abstractmethod
    def size(self, path: str) -> int:
        pass

    @abstractmethod
    def rename(self, from_path: str, to_path: str) -> str | None:
        """Rename a file or directory; returns the new path or None if refused."""
        pass

    @abstractmethod
    def _dir_children(self, path: str) -> list[str]:
        """Root-relative paths of the children of a normalized directory path."""
        pass
