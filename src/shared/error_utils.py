from src.shared.errors import (
    ConfigurationError,
    EmptyResponseError,
    InferenceTimeoutError,
    NetworkError,
    ProcessStartupError,
    RepairFailure,
)


class ErrorUtils:
    # Ordered: InferenceTimeoutError must be checked before generic handlers.
    _ERROR_TYPES: list[tuple[type, str, int]] = [
        (ConfigurationError, "configuration_error", 503),
        (ProcessStartupError, "process_startup_error", 503),
        (InferenceTimeoutError, "timeout_error", 504),
        (NetworkError, "network_error", 502),
        (EmptyResponseError, "empty_response", 422),
        (RepairFailure, "repair_failure", 422),
    ]

    @staticmethod
    def format_error_response(message: str, error_type: str) -> dict:
        """
        Formats a consistent error response dictionary.

        Args:
            message: The error message to include in the response.
            error_type: The type of error (e.g., "internal_error", "health_check_error").

        Returns:
            A dictionary with the error details.
        """
        return {
            "error": {
                "message": message,
                "type": error_type
            }
        }

    @staticmethod
    def classify_exception(error: Exception) -> tuple[str, int]:
        """Return the (error_type, http_status) pair for an exception."""
        for error_class, error_type, status in ErrorUtils._ERROR_TYPES:
            if isinstance(error, error_class):
                return error_type, status
        return "internal_error", 500

    @staticmethod
    def from_exception(error: Exception) -> tuple[dict, int]:
        error_type, status = ErrorUtils.classify_exception(error)
        return ErrorUtils.format_error_response(str(error), error_type), status
