"""Domain-specific errors for dynctl."""


class DynctlError(Exception):
    """Base error for dynctl."""


class ResolutionError(DynctlError):
    """Raised when a device base URL cannot be turned into a request URL."""


class TransportError(DynctlError):
    """Base transport error."""


class NetworkError(TransportError):
    """Raised on connection, timeout, or other transport failures."""


class DecodeError(TransportError):
    """Raised when a device response body is not valid UTF-8 text."""


class ConfigImportError(DynctlError):
    """Raised when a remote device configuration cannot be fetched or parsed."""


class DeviceValidationError(DynctlError):
    """Raised when a device record does not conform to schema or semantics."""


class CredentialError(DeviceValidationError):
    """Raised when a secure device is missing its login or password."""


class DeviceNotFoundError(DynctlError):
    """Raised when no device matches the requested id or name."""


class DuplicateDeviceError(DynctlError):
    """Raised when adding a device whose id is already registered."""


class UnsupportedIntentError(DynctlError):
    """Raised when a command intent does not apply to the device kind."""


class StoreError(DynctlError):
    """Raised when a persisted store scope cannot be read or written."""
