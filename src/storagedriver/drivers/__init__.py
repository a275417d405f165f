"""Built-in storage drivers.

Importing this package registers every built-in driver with the registry.
"""

from .base import Driver
from .ftps import FtpsDriver
from .ftps import FtpsFile
from .local import LocalDriver


__all__ = [
    "Driver",
    "LocalDriver",
    "FtpsDriver",
    "FtpsFile",
]
