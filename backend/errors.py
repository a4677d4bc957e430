"""
Caller-visible errors for callable endpoints.
Serialized as {"error": {"status": <code>, "message": <msg>}} by the handler in main.py.
"""
from __future__ import annotations


class CallableError(Exception):
    code = "internal"
    http_status = 500

    def __init__(self, message: str = "Something went wrong"):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": {"status": self.code, "message": self.message}}


class Unauthenticated(CallableError):
    code = "unauthenticated"
    http_status = 401

    def __init__(self, message: str = "The function must be called while authenticated."):
        super().__init__(message)


class PermissionDenied(CallableError):
    code = "permission-denied"
    http_status = 403

    def __init__(self, message: str = "Subscription required"):
        super().__init__(message)


class InternalError(CallableError):
    pass


class DataUnavailable(Exception):
    """The deals collection could not be read. Detail stays in the logs."""
