"""Server discovery error hierarchy.

All service-layer errors inherit from ServerDiscoveryError. The global
exception handler in main.py converts these to structured JSON responses with
the correct HTTP status code and a request_id for traceability. The discovery
orchestrator converts them into an ``error`` status on the affected server.
"""


class ServerDiscoveryError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ServerDiscoveryError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationError(ServerDiscoveryError):
    status_code = 422
    code = "VALIDATION_ERROR"


class MalformedPayloadError(ValidationError):
    code = "MALFORMED_PAYLOAD"


class StoreError(ServerDiscoveryError):
    status_code = 503
    code = "STORE_UNAVAILABLE"


class TransactionError(ServerDiscoveryError):
    """A multi-table write was rolled back; ``step`` names the sub-step that failed."""

    status_code = 500
    code = "TRANSACTION_FAILED"

    def __init__(self, step: str, message: str = "") -> None:
        super().__init__(f"{step}: {message}" if message else step)
        self.step = step
