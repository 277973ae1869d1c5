class LogSyncError(Exception):
    """Base class for every error raised by logsync."""


class InvalidInputError(LogSyncError, ValueError):
    """Caller input rejected before any network or store I/O."""


class InvalidBlockRangeError(InvalidInputError):
    def __init__(self, from_block: int, to_block: int):
        self.from_block = from_block
        self.to_block = to_block
        super().__init__(f"from_block ({from_block}) cannot be greater than to_block ({to_block})")


class AbiError(InvalidInputError):
    """ABI entry missing, malformed, or of the wrong kind."""


class RPCError(LogSyncError):
    """JSON-RPC call failed after retries or returned an error payload."""

    def __init__(self, method: str, message: str, code=None):
        self.method = method
        self.code = code
        super().__init__(f"RPC call {method} failed: {message}")


class StoreError(LogSyncError):
    """Key-value backend read or write failure."""
