"""Domain-specific errors for i2cbridge."""


class I2cBridgeError(Exception):
    """Base error for i2cbridge."""


class ConfigurationError(I2cBridgeError):
    """Raised when a configuration record is missing fields or is malformed."""


class ConfigLoadError(ConfigurationError):
    """Raised when reading a configuration file fails."""


class ConfigValidationError(ConfigurationError):
    """Raised when a configuration file does not conform to schema."""


class UnknownDeviceTypeError(ConfigurationError):
    """Raised when no handler implementation exists for a device type."""


class DuplicateAddressError(ConfigurationError):
    """Raised when two devices claim the same bus address."""


class DeviceLifecycleError(I2cBridgeError):
    """Raised on an invalid handler state transition."""


class TransportError(I2cBridgeError):
    """Base transport error."""


class TransportOpenError(TransportError):
    """Raised when the bus device cannot be opened."""


class TransportIOError(TransportError):
    """Raised when a bus read or write fails."""


class StateStoreError(I2cBridgeError):
    """Raised when the state store rejects or cannot take a value."""


class AdminCommandError(I2cBridgeError):
    """Raised when an administrative request is malformed."""
