# misminer/errors.py
# Exceptions raised by the miner and its collaborators.


class ConfigError(ValueError):
    """Bad configuration: invalid attribute references, option values or attribute types."""


class DataError(ValueError):
    """The data cannot support the request (e.g. a split leaving one side empty)."""


class MiningCancelled(RuntimeError):
    """Raised when a caller-supplied stop check asks a running session to stop."""
