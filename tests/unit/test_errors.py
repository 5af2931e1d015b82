"""
Cashbox — Error Type Tests
"""

import pytest

from cashbox.errors import (
    CacheConnectionError,
    CacheError,
    CacheOperationError,
    CashboxError,
    ConfigurationError,
    DependencyError,
    ErrorCode,
    LoaderError,
    SerializationError,
    TaggingNotSupportedError,
    ValidationError,
    WriteBackError,
    extract_error_code,
)


class TestErrorHierarchy:
    """Test suite for the exception classes."""

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (ValidationError("bad"), ErrorCode.INVALID_INPUT),
            (CacheOperationError("failed"), ErrorCode.CACHE_FAILURE),
            (CacheConnectionError("redis"), ErrorCode.CACHE_UNAVAILABLE),
            (SerializationError("not json"), ErrorCode.SERIALIZATION_FAILURE),
            (WriteBackError("lost", value=1), ErrorCode.WRITE_BACK_FAILURE),
            (LoaderError("loader"), ErrorCode.LOADER_FAILURE),
            (TaggingNotSupportedError("memcached", "set"), ErrorCode.TAGGING_NOT_SUPPORTED),
            (ConfigurationError("config"), ErrorCode.CONFIGURATION_ERROR),
            (DependencyError("redis"), ErrorCode.MISSING_DEPENDENCY),
        ],
    )
    def test_codes(self, error: CashboxError, code: ErrorCode) -> None:
        assert error.code == code
        assert extract_error_code(error) == code

    def test_store_errors_share_a_base(self) -> None:
        for error in (CacheConnectionError("redis"), SerializationError("x"), WriteBackError("x", value=None)):
            assert isinstance(error, CacheError)

    def test_validation_error_code_override(self) -> None:
        error = ValidationError("bad key", code=ErrorCode.INVALID_KEY)

        assert error.code == ErrorCode.INVALID_KEY
        assert ValidationError("other").code == ErrorCode.INVALID_INPUT

    def test_to_dict(self) -> None:
        error = TaggingNotSupportedError("memcached", "get_keys")

        assert error.to_dict() == {
            "error": "TaggingNotSupportedError",
            "error_code": "TAGGING_NOT_SUPPORTED",
            "message": "Cache store 'memcached' does not support tagging (get_keys)",
            "details": {"backend": "memcached", "operation": "get_keys"},
        }

    def test_dependency_error_message(self) -> None:
        error = DependencyError("pymemcache", feature="the memcached store", install_hint="pip install pymemcache")

        assert "pymemcache" in str(error)
        assert "pip install pymemcache" in str(error)
        assert error.details["feature"] == "the memcached store"
        assert isinstance(error, ConfigurationError)

    def test_write_back_error_keeps_value(self) -> None:
        assert WriteBackError("lost", value=[1, 2]).value == [1, 2]

    def test_foreign_exception_code(self) -> None:
        assert extract_error_code(RuntimeError("x")) == ErrorCode.CACHE_FAILURE
