"""storagedriver - Uniform File/Dir access over local disk and FTPS."""

__version__ = "0.1.0"
__license__ = "GPL-3.0-or-later"

from storagedriver.config import DriverConfig
from storagedriver.config import open_driver
from storagedriver.drivers import Driver
from storagedriver.drivers import FtpsDriver
from storagedriver.drivers import LocalDriver
from storagedriver.entry import Dir
from storagedriver.entry import Entry
from storagedriver.entry import File
from storagedriver.entry import Metadata
from storagedriver.paths import safepath
from storagedriver.registry import get_driver
from storagedriver.registry import protocols


__all__ = [
    "Driver",
    "LocalDriver",
    "FtpsDriver",
    "Entry",
    "File",
    "Dir",
    "Metadata",
    "DriverConfig",
    "open_driver",
    "get_driver",
    "protocols",
    "safepath",
    "__version__",
]
