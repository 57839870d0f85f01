"""Error taxonomy for credential and unlock checks.

Each error carries the HTTP status it maps to and a stable ``code`` the UI
keys on. Messages are generic on purpose: they never include unlock codes,
decrypted plaintext or key material.
"""


class LicensingError(Exception):
    """Base class for every rejection raised by the licensing subsystem."""

    status_code = 400
    code = "licensing_error"
    default_message = "Request rejected"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code}


class AuthenticationMissing(LicensingError):
    status_code = 401
    code = "authentication_required"
    default_message = "Authentication token required"


class AuthenticationInvalid(LicensingError):
    status_code = 401
    code = "invalid_authentication"
    default_message = "Invalid authentication token"


class DecryptionFailed(LicensingError):
    """Any failure while unwrapping the key or decrypting the payload."""

    status_code = 400
    code = "decryption_failed"
    default_message = "Decryption failed"


class MalformedUnlockCode(LicensingError):
    status_code = 400
    code = "malformed_unlock_code"
    default_message = "Decrypted data format invalid"


class ValidationMismatch(LicensingError):
    status_code = 403
    code = "unlock_error"
    default_message = "Unlock code validation failed"


class UnlockRequired(LicensingError):
    status_code = 403
    code = "unlock_error"
    default_message = "Trial period has ended, an unlock code is required"


class InvalidPrivateKey(LicensingError):
    status_code = 500
    code = "invalid_private_key"
    default_message = "Invalid private key"


class StorageUnavailable(LicensingError):
    """Persistence failed; the caller may retry the request."""

    status_code = 503
    code = "storage_unavailable"
    default_message = "Storage temporarily unavailable"
