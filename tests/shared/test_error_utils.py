import pytest

from src.shared.error_utils import ErrorUtils
from src.shared.errors import (
    ConfigurationError,
    EmptyResponseError,
    InferenceTimeoutError,
    NetworkError,
    ProcessStartupError,
    RepairFailure,
)


class TestErrorUtils:
    def test_format_error_response(self):
        assert ErrorUtils.format_error_response("boom", "internal_error") == {
            "error": {"message": "boom", "type": "internal_error"}
        }

    @pytest.mark.parametrize(
        "error, expected",
        [
            (ConfigurationError("no binary", ConfigurationError.BINARY_NOT_FOUND), ("configuration_error", 503)),
            (ProcessStartupError("exited"), ("process_startup_error", 503)),
            (InferenceTimeoutError("slow"), ("timeout_error", 504)),
            (NetworkError("refused"), ("network_error", 502)),
            (EmptyResponseError("nothing"), ("empty_response", 422)),
            (RepairFailure("garbage"), ("repair_failure", 422)),
            (RuntimeError("unexpected"), ("internal_error", 500)),
        ],
    )
    def test_classify_exception(self, error, expected):
        assert ErrorUtils.classify_exception(error) == expected

    def test_timeout_error_is_a_builtin_timeout(self):
        assert isinstance(InferenceTimeoutError("slow"), TimeoutError)

    def test_from_exception(self):
        body, status = ErrorUtils.from_exception(NetworkError("HTTP 500", status_code=500))

        assert status == 502
        assert body["error"] == {"message": "HTTP 500", "type": "network_error"}
