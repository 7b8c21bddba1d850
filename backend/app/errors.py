"""Client-facing error codes and the exception that carries them."""

from fastapi import status

ERROR_STATUS = {
    # Client input
    "bad_chain": status.HTTP_400_BAD_REQUEST,
    "bad_txHash": status.HTTP_400_BAD_REQUEST,
    "rows_must_be_array": status.HTTP_400_BAD_REQUEST,
    "bad_input": status.HTTP_400_BAD_REQUEST,
    # Authentication
    "missing_token": status.HTTP_401_UNAUTHORIZED,
    "bad_token": status.HTTP_401_UNAUTHORIZED,
    # Payment state, recoverable by retrying with another/newer transaction
    "not_found": status.HTTP_404_NOT_FOUND,
    "failed_tx": status.HTTP_400_BAD_REQUEST,
    "not_paid": status.HTTP_402_PAYMENT_REQUIRED,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "server_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ApiError(Exception):
    """Raised by handlers; rendered as ``{"ok": false, "error": code}``."""

    def __init__(self, code: str, headers: dict | None = None):
        if code not in ERROR_STATUS:
            raise ValueError(f"Unknown error code: {code}")
        super().__init__(code)
        self.code = code
        self.status_code = ERROR_STATUS[code]
        self.headers = headers

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.code}
