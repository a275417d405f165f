"""Custom exceptions for storagedriver."""


class StorageDriverError(Exception):
    """Base exception for storage driver errors."""
    pass


class ConfigurationError(StorageDriverError):
    """Driver could not be configured (bad root, unknown protocol, failed connect)."""
    pass


class ConnectionLostError(StorageDriverError):
    """Remote connection failed again after reconnecting."""
    pass


class TransferError(StorageDriverError):
    """Server refused a file transfer."""
    pass


class UnsupportedTargetError(StorageDriverError, TypeError):
    """Copy target is not a path, File or Dir."""
    pass
