"""
Carrier Integration Exception Hierarchy

All runtime failures that cross a component boundary are raised as
CarrierIntegrationError carrying a classified CarrierError payload
(code, message, details, retryable flag, carrier-native code, timestamp).

Exception Hierarchy:
    CarrierIntegrationError      runtime / network / carrier failures
    ConfigurationError           caller or startup mistakes
    └── CarrierNotFoundError     unknown carrier name
"""
import enum
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from carrier_rates.core.utils import utc_isoformat


class ErrorCode(str, enum.Enum):
    """Flat error taxonomy shared by every carrier."""
    # Authentication
    AUTH_FAILED = "AUTH_FAILED"
    AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_PACKAGE = "INVALID_PACKAGE"

    # API
    API_ERROR = "API_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Network
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"

    # Carrier
    CARRIER_ERROR = "CARRIER_ERROR"
    NO_RATES_AVAILABLE = "NO_RATES_AVAILABLE"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Codes that are worth reattempting after a delay
RETRYABLE_ERROR_CODES = frozenset({
    ErrorCode.RATE_LIMIT_EXCEEDED,
    ErrorCode.SERVICE_UNAVAILABLE,
    ErrorCode.NETWORK_ERROR,
    ErrorCode.TIMEOUT,
})


def is_retryable(code: ErrorCode) -> bool:
    """Default retryability for an error code."""
    return code in RETRYABLE_ERROR_CODES


class CarrierError(BaseModel):
    """Classified error payload."""
    model_config = ConfigDict(frozen=True)

    code: ErrorCode
    message: str
    details: Optional[Dict[str, Any]] = None
    retryable: bool = False
    carrier_code: Optional[str] = None
    timestamp: str = Field(default_factory=utc_isoformat)


class CarrierIntegrationError(Exception):
    """
    Typed error raised by the transport, token manager and carrier adapters.

    Attributes mirror the wrapped CarrierError. The underlying cause, if any,
    is chained via ``__cause__``.
    """

    def __init__(self, error: CarrierError, cause: Optional[BaseException] = None):
        self.error = error
        super().__init__(error.message)
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def create(
        cls,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: Optional[bool] = None,
        carrier_code: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> "CarrierIntegrationError":
        """Build an error, defaulting retryability from the code."""
        error = CarrierError(
            code=code,
            message=message,
            details=details,
            retryable=is_retryable(code) if retryable is None else retryable,
            carrier_code=carrier_code,
        )
        return cls(error, cause)

    @classmethod
    def validation_failed(
        cls,
        errors: Iterable[Dict[str, Any]],
        cause: Optional[BaseException] = None,
    ) -> "CarrierIntegrationError":
        return cls.create(
            ErrorCode.VALIDATION_ERROR,
            "Input validation failed",
            details={"errors": list(errors)},
            retryable=False,
            cause=cause,
        )

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def details(self) -> Optional[Dict[str, Any]]:
        return self.error.details

    @property
    def retryable(self) -> bool:
        return self.error.retryable

    @property
    def carrier_code(self) -> Optional[str]:
        return self.error.carrier_code

    @property
    def timestamp(self) -> str:
        return self.error.timestamp

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        data = self.error.model_dump(mode="json")
        data["error_type"] = self.__class__.__name__
        return data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value!r}, message={self.message!r})"


class ConfigurationError(Exception):
    """Startup or caller-programming mistake. Never retryable, never a CarrierError."""


class CarrierNotFoundError(ConfigurationError):
    """Requested carrier name is not registered."""

    def __init__(self, carrier_name: str, supported: Iterable[str]):
        self.carrier_name = carrier_name
        self.supported = sorted(supported)
        super().__init__(
            f"Unsupported carrier: {carrier_name}. "
            f"Supported carriers: {', '.join(self.supported) or '(none)'}"
        )
