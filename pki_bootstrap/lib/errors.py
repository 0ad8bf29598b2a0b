"""Error types raised by PKI bootstrap operations."""


class PKIError(Exception):
    """Base class for all bootstrap failures."""


class ConfigurationError(PKIError):
    """Cluster or bootstrap configuration is invalid or incomplete."""


class StorageError(PKIError):
    """Filesystem read, write, or permission failure for an artifact."""


class CryptoError(PKIError):
    """Key generation, signing, parsing, or encoding failure."""


class BootstrapCancelled(PKIError):
    """Cancellation was requested between bootstrap steps."""
