"""
errors.py
Error taxonomy. Every error carries a message key (see messages.py) so the UI
can show it in the active language.
"""

from __future__ import annotations


class PortError(Exception):
    code = "status_error"

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message or self.code)
        if code:
            self.code = code


class AuthFailure(PortError):
    code = "login_error"


class Forbidden(PortError):
    code = "forbidden"


class NotFound(PortError):
    code = "not_found"


class TransportFailure(PortError):
    code = "transport_error"


class ValidationFailure(PortError):
    """Missing or invalid form input. `errors` holds every problem found."""

    code = "save_error"

    def __init__(self, message: str = "", code: str | None = None, errors: list[str] | None = None):
        super().__init__(message, code)
        self.errors = list(errors or ([message] if message else []))


class DeviceError(PortError):
    code = "device_error"
