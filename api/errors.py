"""
Portal error taxonomy.

Services raise these; main.py renders any PortalError as
{"success": false, "message": ...} with the error's status code.
"""


class PortalError(Exception):
    status_code = 500
    default_message = "Request failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    status_code = 400
    default_message = "Invalid request."


class Unauthorized(PortalError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(PortalError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(PortalError):
    status_code = 404
    default_message = "Not found."


class Conflict(PortalError):
    status_code = 409
    default_message = "Conflict."


class Expired(PortalError):
    status_code = 400
    default_message = "Expired."


class Mismatch(PortalError):
    status_code = 401
    default_message = "Invalid code."


class OtpExpired(Expired):
    default_message = "OTP expired."


class OtpMismatch(Mismatch):
    default_message = "Invalid code."


class TradingPlatformError(PortalError):
    status_code = 500
    default_message = "Trading platform request failed."


class RemoteProvisioningError(TradingPlatformError):
    default_message = "Failed to create trading account."


class SettlementError(TradingPlatformError):
    default_message = "Balance adjustment failed."


class PlatformUnavailable(TradingPlatformError):
    """The request may or may not have reached the platform."""
    default_message = "Trading platform unavailable."


class EmailDeliveryError(PortalError):
    status_code = 500
    default_message = "Failed to send email."
