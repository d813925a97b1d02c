"""lsp-fanout error hierarchy

every exception raised by this package inherits from FanoutError.
per-client failures are collected as ResponseError values inside a fan-out
result; only argument errors are raised to the caller.
"""

from typing import Optional


class ErrorCodes:
    """JSON-RPC / LSP error codes used by this package"""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_NOT_INITIALIZED = -32002
    UNKNOWN_ERROR_CODE = -32001
    REQUEST_FAILED = -32803
    SERVER_CANCELLED = -32802
    CONTENT_MODIFIED = -32801
    REQUEST_CANCELLED = -32800


class FanoutError(Exception):
    """base exception for all lsp-fanout errors"""

    def __init__(self, message: str, code: str = "FANOUT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        """convert to a plain dict for reporting"""
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
        }


# ═══════════════════════════════════════════════════════════════════════════
# protocol errors
# ═══════════════════════════════════════════════════════════════════════════

class ResponseError(FanoutError):
    """raised by a transport when a client answers with a protocol error"""

    def __init__(self, lsp_code: int, message: str, data: Optional[object] = None):
        super().__init__(message, "RESPONSE_ERROR")
        self.lsp_code = lsp_code
        self.data = data

    @classmethod
    def from_message(cls, error: dict) -> "ResponseError":
        """build from the `error` member of a JSON-RPC response

        Args:
            error: {code, message, data?}; missing members get defaults

        Returns:
            ResponseError carrying the LSP code
        """
        return cls(
            error.get("code", ErrorCodes.UNKNOWN_ERROR_CODE),
            error.get("message", "Unknown error"),
            error.get("data"),
        )

    def __str__(self) -> str:
        return f"{self.lsp_code}: {self.message}"

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["lsp_code"] = self.lsp_code
        return result


class ClientGoneError(FanoutError):
    """raised by a transport when the client shut down before answering"""

    def __init__(self, client_id: int):
        super().__init__(f"Client with id={client_id} disappeared", "CLIENT_GONE")
        self.client_id = client_id


# ═══════════════════════════════════════════════════════════════════════════
# capability and argument errors
# ═══════════════════════════════════════════════════════════════════════════

class NoCapabilityError(FanoutError):
    """no attached client supports the requested method"""

    def __init__(self, method: str):
        super().__init__(
            f"method {method} is not supported by any of the servers registered for the current document",
            "NO_CAPABILITY",
        )
        self.method = method


class ValidationError(FanoutError):
    def __init__(self, field: str, message: str):
        super().__init__(f"Validation error for '{field}': {message}", "VALIDATION_ERROR")
        self.field = field
