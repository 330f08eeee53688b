"""
Name: Retry Helper Tests

Responsibilities:
  - Validate transient vs permanent error classification
  - Validate that decorators retry only what they should
"""

import pytest

from ragcore.exceptions import InvalidFilterError, RetrievalError
from ragcore.infrastructure.services.retry import (
    create_retrieval_retry,
    create_retry_decorator,
    get_http_status_code,
    is_transient_error,
    is_transient_retrieval_error,
)


class HttpError(Exception):
    def __init__(self, code: int, message: str = "http error"):
        super().__init__(message)
        self.code = code


class ResponseError(Exception):
    def __init__(self, status_code: int):
        super().__init__("response error")
        self.response = type("Response", (), {"status_code": status_code})()


@pytest.mark.unit
class TestErrorClassification:
    @pytest.mark.parametrize("code", [429, 500, 502, 503, 504])
    def test_transient_http_codes(self, code):
        assert is_transient_error(HttpError(code)) is True

    @pytest.mark.parametrize("code", [400, 401, 403, 404])
    def test_permanent_http_codes(self, code):
        assert is_transient_error(HttpError(code, "timed out")) is False

    def test_status_from_response_object(self):
        assert get_http_status_code(ResponseError(503)) == 503

    def test_exception_name_patterns(self):
        assert is_transient_error(TimeoutError()) is True
        assert is_transient_error(ConnectionError()) is True

    def test_message_patterns(self):
        assert is_transient_error(Exception("Rate limit reached")) is True

    def test_unknown_errors_are_permanent(self):
        assert is_transient_error(ValueError("bad input")) is False

    def test_retrieval_classification(self):
        assert is_transient_retrieval_error(RetrievalError("down", transient=True)) is True
        assert is_transient_retrieval_error(RetrievalError("bad sql")) is False
        assert is_transient_retrieval_error(InvalidFilterError("bad filter")) is False
        assert is_transient_retrieval_error(ConnectionError()) is False


@pytest.mark.unit
class TestRetryDecorators:
    def test_provider_retry_stops_on_permanent_error(self):
        calls = []

        @create_retry_decorator(max_attempts=3, base_delay=0.0, max_delay=0.0)
        def call():
            calls.append(1)
            raise HttpError(400)

        with pytest.raises(HttpError):
            call()
        assert len(calls) == 1

    def test_provider_retry_retries_transient_error(self):
        calls = []

        @create_retry_decorator(max_attempts=3, base_delay=0.0, max_delay=0.0)
        def call():
            calls.append(1)
            if len(calls) < 3:
                raise HttpError(503)
            return "ok"

        assert call() == "ok"
        assert len(calls) == 3

    def test_retrieval_retry_attempts_include_first_try(self):
        calls = []

        @create_retrieval_retry(2, 0.0)
        def call():
            calls.append(1)
            raise RetrievalError("down", transient=True)

        with pytest.raises(RetrievalError):
            call()
        assert len(calls) == 2
