"""Entry model: File and Dir handles that delegate to their owning driver."""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Union

from storagedriver import paths
from storagedriver.utils.errors import UnsupportedTargetError

if TYPE_CHECKING:
    from storagedriver.drivers.base import Driver


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metadata:
    """Modification time and size of an entry."""

    mtime: datetime | None
    size: int


class Entry(ABC):
    """A path within a driver's root.

    Entries are cheap views: they need not exist in the backend, and the
    driver does not keep track of the entries it hands out.
    """

    def __init__(self, path: str, driver: Driver):
        self.path = paths.safepath(path)
        self.driver = driver

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r}, driver={self.driver.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entry):
            return NotImplemented
        return type(self) is type(other) and self.path == other.path and self.driver is other.driver

    def __hash__(self) -> int:
        return hash((type(self), self.path, id(self.driver)))

    @property
    def name(self) -> str:
        return paths.basename(self.path)

    @property
    def protocol(self) -> str:
        return self.driver.protocol

    @property
    def local(self) -> bool:
        return self.driver.local

    @abstractmethod
    def is_file(self) -> bool:
        pass

    def exists(self) -> bool:
        return self.driver.exists(self.path)

    def delete(self) -> bool:
        return self.driver.delete(self.path)

    def mtime(self) -> datetime | None:
        return self.driver.mtime(self.path)

    def size(self) -> int:
        return self.driver.size(self.path)

    def metadata(self) -> Metadata:
        return Metadata(mtime=self.mtime(), size=self.size())

    def parent(self) -> Dir:
        """Get the directory containing this entry."""
        return self.driver.dir(paths.dirname(self.path))

    def rename(self, new_name: str) -> str | None:
        """Rename in place, keeping the parent directory.

        Only the last segment of new_name is used. Returns the new path, or
        None if the backend refused (the entry then keeps its old path).
        """
        new_path = paths.join(paths.dirname(self.path), paths.basename(new_name))
        result = self.driver.rename(self.path, new_path)
        if result is not None:
            self.path = result
        return result

    def move(self, new_dir: str) -> str | None:
        """Move under new_dir, creating it first if needed.

        A relative new_dir is resolved against the current parent directory.
        """
        result = self.driver.move(self.path, new_dir)
        if result is not None:
            self.path = result
        return result


class Dir(Entry):
    """A directory handle."""

    def is_file(self) -> bool:
        return False

    def exists(self) -> bool:
        return self.driver.dir_exists(self.path)

    def is_root(self) -> bool:
        return self.path == paths.SEPARATOR

    def entries(self) -> list[str]:
        """List root-relative paths of the immediate children."""
        return self.driver.entries(self.path)

    def names(self) -> list[str]:
        """List base names of the immediate children."""
        return [paths.basename(p) for p in self.entries()]

    def obj_entries(self) -> list[File | Dir]:
        """List the immediate children as File and Dir objects."""
        return self.driver.obj_entries(self.path)

    def parent(self) -> Dir:
        if self.is_root():
            return self
        return super().parent()

    def child(self, path: str) -> Dir:
        return self.driver.dir(paths.join(self.path, path))

    def file(self, path: str) -> File:
        return self.driver.file(paths.join(self.path, path))

    def touch(self) -> None:
        """Create this directory and any missing ancestors, top-down."""
        if not self.is_root():
            self.parent().touch()
        if not self.exists():
            self.driver.mkdir(self.path)


class File(Entry):
    """A file handle.

    All content access goes through local_path. Drivers whose backend is not
    directly addressable override localize() and save_remote() to keep that
    local copy in sync with the remote object.
    """

    def __init__(self, path: str, driver: Driver):
        super().__init__(path, driver)
        self.localized = False

    def is_file(self) -> bool:
        return True

    def exists(self) -> bool:
        return self.driver.file_exists(self.path)

    @property
    def local_path(self) -> str:
        return self.driver.abspath(self.path)

    def localize(self, force: bool = False) -> None:
        """Make sure local_path holds the current content."""

    def save_remote(self) -> None:
        """Push local_path back to the backend."""

    def touch(self) -> None:
        if self.exists():
            return
        self._write_local(b"", "wb")
        self.save_remote()

    def read(self) -> bytes:
        self.localize()
        try:
            with open(self.local_path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise FileNotFoundError(f"File not found: {self.path}") from None

    def read_text(self, encoding: str = "utf-8") -> str:
        return self.read().decode(encoding)

    def write(self, data: bytes | str) -> None:
        self._write_local(data, "wb")
        self.save_remote()

    def append(self, data: bytes | str) -> None:
        mode = "ab"
        if not self.localized or not os.path.exists(self.local_path):
            if self.exists():
                self.localize()
            else:
                mode = "wb"
        self._write_local(data, mode)
        self.save_remote()

    def _write_local(self, data: bytes | str, mode: str) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        Path(self.local_path).parent.mkdir(parents=True, exist_ok=True)
        with open(self.local_path, mode) as f:
            f.write(data)

    def copy_to(self, target: CopyTarget) -> CopyTarget:
        """Copy this file to a local path, another File, or into a Dir.

        Returns the target; for a Dir that is the new File inside it.
        """
        if isinstance(target, Dir):
            target = target.file(self.name)
        if isinstance(target, File):
            self.localize()
            _copy_file(self.local_path, target.local_path)
            target.save_remote()
            return target
        if isinstance(target, (str, os.PathLike)):
            self.localize()
            _copy_file(self.local_path, os.fspath(target))
            return target
        raise UnsupportedTargetError(f"Copy target not supported: {type(target).__name__}")

    def copy_from(self, source: CopyTarget) -> File:
        """Replace this file's content with a local path, File, or same-named file in a Dir."""
        if isinstance(source, Dir):
            source = source.file(self.name)
        if isinstance(source, File):
            source.localize()
            source_path = source.local_path
        elif isinstance(source, (str, os.PathLike)):
            source_path = os.fspath(source)
        else:
            raise UnsupportedTargetError(f"Copy source not supported: {type(source).__name__}")

        _copy_file(source_path, self.local_path)
        self.save_remote()
        return self


CopyTarget = Union[str, os.PathLike, File, Dir]


def _copy_file(source: str, destination: str) -> None:
    logger.debug(f"Copying {source} -> {destination}")
    Path(destination).parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, destination)
