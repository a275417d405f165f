"""FTP-over-TLS driver.

Remote files are never accessed in place. Each FtpsFile keeps a private
shadow copy under the driver's work directory: it is downloaded on first
read (localize) and uploaded after every write (save_remote).
"""

from __future__ import annotations

import ftplib
import logging
import os
import posixpath
import ssl
import tempfile
import uuid
import weakref
import zlib
from collections.abc import Callable
from datetime import datetime
from datetime import timezone
from ftplib import FTP_TLS
from pathlib import Path
from typing import TypeVar

from storagedriver import paths
from storagedriver.entry import Dir
from storagedriver.entry import File
from storagedriver.registry import register_driver
from storagedriver.utils.errors import ConfigurationError
from storagedriver.utils.errors import ConnectionLostError
from storagedriver.utils.errors import TransferError

from .base import Driver


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that mean the connection itself is gone; worth one reconnect.
TRANSIENT_ERRORS = (
    TimeoutError,
    ConnectionError,
    EOFError,
    ssl.SSLEOFError,
    ssl.SSLZeroReturnError,
)

# Protocol-level refusals (550, 450 and friends); callers map these to False/None.
FTP_ERRORS = (ftplib.error_perm, ftplib.error_temp, ftplib.error_reply, ftplib.error_proto)

# 421: the server is closing the control connection.
SERVICE_CLOSING = "421"

DEFAULT_PORT = 21
OPEN_TIMEOUT = 10.0


def _discard_cache_file(path: str, owner_pid: int) -> None:
    """Remove a cache file, but only from the process that created it."""
    if os.getpid() != owner_pid:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, ftplib.error_temp):
        return str(error).startswith(SERVICE_CLOSING)
    return isinstance(error, TRANSIENT_ERRORS)


def _parse_mdtm(response: str) -> datetime | None:
    code, _, value = response.partition(" ")
    if code != "213":
        return None
    try:
        return datetime.strptime(value.strip()[:14], "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


class FtpsFile(File):
    """File on an FTPS server, backed by a private local cache file.

    The cache file is removed by close() (or leaving a with block). If the
    entry is just dropped, a finalizer removes it instead, unless it runs in
    a forked child that merely inherited the entry.
    """

    driver: FtpsDriver

    def __init__(self, path: str, driver: FtpsDriver):
        super().__init__(path, driver)
        # Mirrors the remote directory; the suffix keeps handles on one path apart.
        self._local_path = os.path.join(
            driver.work_dir,
            paths.dirname(self.path).lstrip(paths.SEPARATOR),
            f"{self.name}.{uuid.uuid4().hex[:12]}",
        )
        self._finalizer = self._arm_cleanup()

    def _arm_cleanup(self) -> weakref.finalize:
        return weakref.finalize(self, _discard_cache_file, self._local_path, os.getpid())

    @property
    def local_path(self) -> str:
        return self._local_path

    def localize(self, force: bool = False) -> None:
        if self.localized and not force and os.path.exists(self._local_path):
            return
        if not self.exists():
            raise FileNotFoundError(f"Remote file not found: {self.path}")

        Path(self._local_path).parent.mkdir(parents=True, exist_ok=True)
        if not self.driver.download(remote=self.path, local=self._local_path):
            raise TransferError(f"Download refused: {self.path}")
        self.localized = True

    def save_remote(self) -> None:
        self.driver.mkpath(paths.dirname(self.path))
        if not self.driver.upload(local=self._local_path, remote=self.path):
            raise TransferError(f"Upload refused: {self.path}")
        self.localized = True

    def close(self) -> None:
        """Remove the local cache file now."""
        self._finalizer()
        self.localized = False
        self._finalizer = self._arm_cleanup()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FtpsDriver(Driver):
    """Driver for a directory tree on an FTPS server.

    The driver owns a single control connection, opened on construction.
    Every command runs through _ftp_service, which reconnects and retries
    once when the connection drops. Not safe for concurrent use.
    """

    protocol = "FTPS"
    description = "FTPS server"
    local = False

    file_class = FtpsFile

    def __init__(
        self,
        host: str,
        user: str,
        password: str,
        location: str,
        port: int = DEFAULT_PORT,
        binary: bool = True,
        work_dir: str | None = None,
        timeout: float = OPEN_TIMEOUT,
    ):
        super().__init__(paths.safepath(location))
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.binary = binary
        self.timeout = timeout
        self._work_dir = work_dir
        self._connection: FTP_TLS | None = None

        try:
            self.connect()
        except ftplib.all_errors as e:
            raise ConfigurationError(f"Could not connect to {host}:{port}: {e}") from e

    def __repr__(self) -> str:
        return f"FtpsDriver(host={self.host!r}, port={self.port}, root={self.root!r})"

    @property
    def name(self) -> str:
        return f"{self.protocol}-{paths.base36(zlib.crc32(f'{self.host}{self.root}'.encode()))}"

    @property
    def work_dir(self) -> str:
        return self._work_dir or os.path.join(tempfile.gettempdir(), self.name)

    @work_dir.setter
    def work_dir(self, value: str) -> None:
        self._work_dir = value

    # Connection handling

    def connect(self) -> None:
        """Open and log in a new control connection."""
        logger.info(f"Connecting to ftps://{self.user}@{self.host}:{self.port}{self.root}")

        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

        conn = FTP_TLS(context=context, timeout=self.timeout)
        conn.connect(self.host, self.port)
        conn.login(self.user, self.password)
        conn.prot_p()
        conn.set_pasv(True)
        if self.binary:
            conn.voidcmd("TYPE I")
        self._connection = conn

    def disconnect(self) -> None:
        """Drop the control connection without saying goodbye."""
        if self._connection is None:
            return
        try:
            self._connection.close()
        except ftplib.all_errors:
            pass
        self._connection = None

    def close(self) -> None:
        if self._connection is None:
            return
        logger.info(f"Closing connection to {self.host}:{self.port}")
        try:
            self._connection.quit()
        except ftplib.all_errors:
            pass  # Ignore errors during disconnect
        self.disconnect()

    def _ftp_service(self, operation: Callable[[FTP_TLS], T]) -> T:
        """Run operation on the connection, reconnecting and retrying once.

        Raises:
            ConnectionLostError: If the retry fails with a transient error too
        """
        if self._connection is None:
            self.connect()
        try:
            return operation(self._connection)
        except (*TRANSIENT_ERRORS, ftplib.error_temp) as e:
            if not _is_transient(e):
                raise
            logger.warning(f"Connection to {self.host}:{self.port} failed ({e!r}), reconnecting")
            self.disconnect()

        try:
            self.connect()
            return operation(self._connection)
        except (*TRANSIENT_ERRORS, ftplib.error_temp) as e:
            if not _is_transient(e):
                raise
            raise ConnectionLostError(f"Connection to {self.host}:{self.port} lost: {e!r}") from e

    # Probes

    def dir_exists(self, path: str) -> bool:
        target = self.abspath(path)

        def _probe(conn: FTP_TLS) -> bool:
            conn.cwd(target)
            conn.cwd("/")
            return True

        try:
            return self._ftp_service(_probe)
        except FTP_ERRORS:
            return False

    def is_file(self, path: str) -> bool:
        target = self.abspath(path)
        try:
            return isinstance(self._ftp_service(lambda conn: conn.size(target)), int)
        except FTP_ERRORS:
            return False

    def file_exists(self, path: str) -> bool:
        return self.is_file(path)

    # Directories

    def mkdir(self, path: str) -> Dir | None:
        target = self.abspath(path)
        if not self.dir_exists(path):
            try:
                self._ftp_service(lambda conn: conn.mkd(target))
            except FTP_ERRORS as e:
                logger.warning(f"Could not create directory {path}: {e}")
        return self.dir(path) if self.dir_exists(path) else None

    def mkpath(self, path: str) -> Dir | None:
        path = paths.safepath(path)
        if self.dir_exists(path):
            return self.dir(path)
        if path != paths.SEPARATOR:
            self.mkpath(paths.dirname(path))
        return self.mkdir(path)

    def _dir_children(self, path: str) -> list[str]:
        directory = self.abspath(path)
        try:
            listing = self._ftp_service(lambda conn: conn.nlst(directory))
        except FTP_ERRORS:
            # Many servers answer 550 for an empty or missing directory
            return []

        children = []
        for item in listing:
            name = posixpath.basename(item.rstrip(paths.SEPARATOR))
            if name in ("", ".", ".."):
                continue

            # NLST might return full paths or just names
            if paths.SEPARATOR in item:
                full_path = posixpath.join(paths.SEPARATOR, item)
            else:
                full_path = posixpath.join(directory, name)
            children.append(self.relpath(full_path))
        return children

    # Transfers

    def download(self, remote: str, local: str) -> bool:
        """Fetch a remote file into a local path; False if the server refuses."""
        source = self.abspath(remote)
        logger.debug(f"Downloading {source} -> {local}")

        def _fetch(conn: FTP_TLS) -> None:
            if self.binary:
                with open(local, "wb") as f:
                    conn.retrbinary(f"RETR {source}", f.write)
            else:
                with open(local, "w", encoding=conn.encoding) as f:
                    conn.retrlines(f"RETR {source}", lambda line: f.write(line + "\n"))

        try:
            self._ftp_service(_fetch)
        except FTP_ERRORS as e:
            logger.warning(f"Download of {source} refused: {e}")
            return False
        return True

    def upload(self, local: str, remote: str) -> bool:
        """Store a local file at a remote path; False if the server refuses."""
        target = self.abspath(remote)
        logger.debug(f"Uploading {local} -> {target}")

        def _store(conn: FTP_TLS) -> None:
            with open(local, "rb") as f:
                if self.binary:
                    conn.storbinary(f"STOR {target}", f)
                else:
                    conn.storlines(f"STOR {target}", f)

        try:
            self._ftp_service(_store)
        except FTP_ERRORS as e:
            logger.warning(f"Upload to {target} refused: {e}")
            return False
        return True

    # Modification

    def delete(self, path: str) -> bool:
        target = self.abspath(path)
        is_file = self.is_file(path)
        try:
            self._ftp_service(lambda conn: conn.delete(target) if is_file else conn.rmd(target))
        except FTP_ERRORS:
            return False
        return True

    def delete_tree(self, path: str) -> bool:
        if not self.is_file(path):
            for child in self.entries(path):
                self.delete_tree(child)
        return self.delete(path)

    def rename(self, from_path: str, to_path: str) -> str | None:
        source = self.abspath(from_path)
        target = self.abspath(to_path)
        try:
            self._ftp_service(lambda conn: conn.rename(source, target))
        except FTP_ERRORS as e:
            logger.warning(f"Could not rename {from_path} to {to_path}: {e}")
            return None
        return paths.safepath(to_path)

    # Metadata

    def mtime(self, path: str) -> datetime | None:
        target = self.abspath(path)
        try:
            response = self._ftp_service(lambda conn: conn.sendcmd(f"MDTM {target}"))
        except FTP_ERRORS:
            return None
        return _parse_mdtm(response)

    def size(self, path: str) -> int:
        target = self.abspath(path)
        try:
            return self._ftp_service(lambda conn: conn.size(target)) or 0
        except FTP_ERRORS:
            return 0


register_driver(FtpsDriver)
