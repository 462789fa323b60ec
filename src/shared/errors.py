"""
Error taxonomy for the local inference supervisor and the hybrid router.
"""
from enum import Enum
from typing import Optional


class InferenceError(Exception):
    """Base class for every error raised by the inference layer."""


class ConfigurationError(InferenceError):
    """Paths could not be resolved or the provider is disabled. Never retried automatically."""

    PROVIDER_DISABLED = "provider_disabled"
    BINARY_NOT_FOUND = "binary_not_found"
    MODEL_NOT_FOUND = "model_not_found"
    PATHS_NOT_FOUND = "paths_not_found"

    def __init__(self, message: str, reason: str = PATHS_NOT_FOUND):
        super().__init__(message)
        self.reason = reason


class ProcessStartupError(InferenceError):
    """The server binary could not be spawned or never became ready."""

    def __init__(self, message: str, diagnostic: str = ""):
        super().__init__(message)
        self.diagnostic = diagnostic


class InferenceTimeoutError(InferenceError, TimeoutError):
    """A request exceeded its deadline and was aborted."""


class NetworkError(InferenceError):
    """Non-2xx response or transport failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RepairFailureReason(str, Enum):
    EMPTY = "empty"
    NO_STRUCTURE = "no_structure"
    INVALID_JSON = "invalid_json"
    WRONG_SHAPE = "wrong_shape"
    NO_VALID_ENTRIES = "no_valid_entries"


class RepairFailure(InferenceError):
    """Model output could not be coerced into the expected structure."""

    def __init__(self, message: str, reason: RepairFailureReason = RepairFailureReason.INVALID_JSON, raw: str = ""):
        super().__init__(message)
        self.reason = reason
        self.raw = raw


class EmptyResponseError(InferenceError):
    """The model produced an empty or whitespace-only completion."""
