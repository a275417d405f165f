"""Driver registry.

A static table mapping protocol tokens ("NFS", "FTPS") to driver classes.
Each driver module registers its class once when it is imported.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storagedriver.drivers.base import Driver


_DRIVER_REGISTRY: dict[str, type[Driver]] = {}
logger = logging.getLogger(__name__)


def register_driver(driver_class: type[Driver]) -> type[Driver]:
    """Register a driver class under its protocol token.

    Raises:
        ValueError: If another class already claims the protocol
    """
    key = driver_class.protocol.upper()
    existing = _DRIVER_REGISTRY.get(key)
    if existing is not None and existing is not driver_class:
        raise ValueError(f"Protocol {key} already registered by {existing.__name__}")

    logger.debug(f"Registering driver: {key} ({driver_class.__name__})")
    _DRIVER_REGISTRY[key] = driver_class
    return driver_class


def get_driver(protocol: str) -> type[Driver] | None:
    """Look up a driver class by protocol token, None if unknown."""
    return _DRIVER_REGISTRY.get(protocol.upper())


def protocols() -> list[str]:
    return list(_DRIVER_REGISTRY)


def drivers() -> list[type[Driver]]:
    return list(_DRIVER_REGISTRY.values())
