"""Shared fixtures: local drivers and an in-memory FTPS server double."""

import ftplib
import posixpath

import pytest

from storagedriver.drivers import LocalDriver
from storagedriver.drivers import ftps
from storagedriver.drivers.ftps import FtpsDriver


class FakeFTPServer:
    """In-memory FTP server state shared by every connection it accepts."""

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self.connections: list["FakeFTP"] = []
        self.logins: list[tuple[str, str]] = []
        self.downloads = 0
        self.uploads = 0
        self.refuse_connections = False
        self.bare_names = False
        self.mdtm = "20240102030405"
        self.fail_next: list[Exception] = []
        self.commands: list[str] = []

    def factory(self, context=None, timeout=None):
        """Stand-in for ftplib.FTP_TLS."""
        conn = FakeFTP(self, context=context, timeout=timeout)
        self.connections.append(conn)
        return conn

    def add_dir(self, path: str) -> None:
        while path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def add_file(self, path: str, data: bytes) -> None:
        self.add_dir(posixpath.dirname(path))
        self.files[path] = data

    def drop_connections(self) -> None:
        for conn in self.connections:
            conn.alive = False

    def children(self, path: str) -> list[str]:
        return sorted(
            p for p in self.files.keys() | self.dirs if p != path and posixpath.dirname(p) == path
        )


class FakeFTP:
    """Connection to a FakeFTPServer with the subset of the FTP_TLS API the driver uses."""

    encoding = "utf-8"

    def __init__(self, server: FakeFTPServer, context=None, timeout=None):
        self.server = server
        self.context = context
        self.timeout = timeout
        self.alive = True
        self.closed = False
        self.passive = None
        self.protected = False

    def _check(self) -> None:
        if self.server.fail_next:
            raise self.server.fail_next.pop(0)
        if not self.alive or self.closed:
            raise EOFError

    def connect(self, host, port):
        if self.server.refuse_connections:
            raise ConnectionRefusedError(111, "Connection refused")
        self.host = host
        self.port = port
        return "220 Welcome"

    def login(self, user, passwd):
        self.server.logins.append((user, passwd))
        return "230 Logged in"

    def prot_p(self):
        self.protected = True
        return "200 Protection level set to P"

    def set_pasv(self, val):
        self.passive = val

    def voidcmd(self, cmd):
        self._check()
        self.server.commands.append(cmd)
        return "200 OK"

    def sendcmd(self, cmd):
        self._check()
        verb, _, arg = cmd.partition(" ")
        if verb == "MDTM":
            if arg not in self.server.files:
                raise ftplib.error_perm(f"550 {arg}: No such file")
            return f"213 {self.server.mdtm}"
        raise ftplib.error_perm("502 Command not implemented")

    def cwd(self, path):
        self._check()
        if path not in self.server.dirs:
            raise ftplib.error_perm(f"550 {path}: No such directory")
        return "250 OK"

    def size(self, path):
        self._check()
        if path not in self.server.files:
            raise ftplib.error_perm(f"550 {path}: Could not get file size")
        return len(self.server.files[path])

    def mkd(self, path):
        self._check()
        if posixpath.dirname(path) not in self.server.dirs or path in self.server.dirs:
            raise ftplib.error_perm(f"550 {path}: Cannot create directory")
        self.server.dirs.add(path)
        return path

    def rmd(self, path):
        self._check()
        if path not in self.server.dirs or self.server.children(path):
            raise ftplib.error_perm(f"550 {path}: Cannot remove directory")
        self.server.dirs.discard(path)
        return "250 OK"

    def delete(self, path):
        self._check()
        if path not in self.server.files:
            raise ftplib.error_perm(f"550 {path}: No such file")
        del self.server.files[path]
        return "250 OK"

    def rename(self, fromname, toname):
        self._check()
        server = self.server
        if posixpath.dirname(toname) not in server.dirs:
            raise ftplib.error_perm(f"550 {toname}: No such directory")
        if fromname in server.files:
            server.files[toname] = server.files.pop(fromname)
        elif fromname in server.dirs and fromname != "/":
            prefix = fromname + "/"
            server.dirs = {toname + d[len(fromname):] if d == fromname or d.startswith(prefix) else d for d in server.dirs}
            server.files = {
                (toname + f[len(fromname):] if f.startswith(prefix) else f): data for f, data in server.files.items()
            }
        else:
            raise ftplib.error_perm(f"550 {fromname}: No such file or directory")
        return "250 OK"

    def nlst(self, path):
        self._check()
        if path not in self.server.dirs:
            raise ftplib.error_perm(f"550 {path}: No such directory")
        children = self.server.children(path)
        if self.server.bare_names:
            return [posixpath.basename(c) for c in children]
        return children

    def retrbinary(self, cmd, callback):
        self._check()
        path = cmd[len("RETR "):]
        if path not in self.server.files:
            raise ftplib.error_perm(f"550 {path}: No such file")
        self.server.downloads += 1
        callback(self.server.files[path])
        return "226 Transfer complete"

    def storbinary(self, cmd, fp):
        self._check()
        path = cmd[len("STOR "):]
        if posixpath.dirname(path) not in self.server.dirs:
            raise ftplib.error_perm(f"553 {path}: No such directory")
        self.server.files[path] = fp.read()
        self.server.uploads += 1
        return "226 Transfer complete"

    def retrlines(self, cmd, callback):
        self._check()
        path = cmd[len("RETR "):]
        if path not in self.server.files:
            raise ftplib.error_perm(f"550 {path}: No such file")
        self.server.downloads += 1
        for line in self.server.files[path].decode(self.encoding).splitlines():
            callback(line)
        return "226 Transfer complete"

    def storlines(self, cmd, fp):
        self._check()
        path = cmd[len("STOR "):]
        if posixpath.dirname(path) not in self.server.dirs:
            raise ftplib.error_perm(f"553 {path}: No such directory")
        # ASCII mode: the server stores its own line endings
        self.server.files[path] = b"".join(line.rstrip(b"\r\n") + b"\n" for line in fp)
        self.server.uploads += 1
        return "226 Transfer complete"

    def quit(self):
        self._check()
        self.closed = True
        return "221 Goodbye"

    def close(self):
        self.closed = True


@pytest.fixture
def local_root(tmp_path):
    """Empty directory used as a local driver root."""
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def local_driver(local_root):
    return LocalDriver(location=str(local_root))


@pytest.fixture
def ftp_server(monkeypatch):
    """Fake server with a /srv directory, wired in place of FTP_TLS."""
    server = FakeFTPServer()
    server.add_dir("/srv")
    monkeypatch.setattr(ftps, "FTP_TLS", server.factory)
    return server


@pytest.fixture
def ftps_driver(ftp_server, tmp_path):
    driver = FtpsDriver(
        host="ftp.example.org",
        user="alice",
        password="secret",
        location="/srv",
        work_dir=str(tmp_path / "cache"),
    )
    yield driver
    driver.close()
