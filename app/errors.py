"""
Error taxonomy for portal commands.

Every command validates before it mutates, so any of these leaves stored
state exactly as it was.
"""


class PortalError(Exception):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(PortalError):
    status_code = 404


class InvalidTransition(PortalError):
    status_code = 409


class InvalidAmount(PortalError):
    status_code = 422


class InvalidStep(PortalError):
    status_code = 422


class ValidationError(PortalError):
    """A required field is missing or malformed."""

    status_code = 422
