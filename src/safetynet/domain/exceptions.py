class SafetynetError(Exception):
    """Base class for all delivery guard errors."""
    pass

class StorageError(SafetynetError):
    """Raised when the history ledger's backing store is unreachable or rejects an operation."""
    pass

class ConfigurationError(SafetynetError):
    """Raised when a policy cannot be resolved (unknown channel, malformed limit or timeframe)."""
    pass
