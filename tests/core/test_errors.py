"""Tests for fleet.core.errors."""

from fleet.core.errors import (
    AssignmentNotFoundError,
    ErrorCategory,
    FleetError,
    IntegrityError,
    NotFoundError,
    ReportError,
    SessionNotFoundError,
    TransientStoreError,
    ValidationError,
    error_code,
    is_retryable,
)


class TestErrorHierarchy:
    def test_not_found_codes(self):
        err = SessionNotFoundError("w-1")
        assert isinstance(err, NotFoundError)
        assert err.code == "NOT_FOUND"
        assert err.retryable is False
        assert "w-1" in err.message

    def test_report_error_is_validation(self):
        err = ReportError("bad report")
        assert isinstance(err, ValidationError)
        assert err.code == "VALIDATION_FAILED"

    def test_transient_is_retryable(self):
        err = TransientStoreError("database is locked")
        assert err.code == "TRANSIENT"
        assert is_retryable(err)

    def test_integrity_maps_to_conflict(self):
        assert IntegrityError("UNIQUE constraint failed").code == "CONFLICT"

    def test_foreign_exceptions(self):
        assert error_code(RuntimeError("boom")) == "INTERNAL"
        assert is_retryable(RuntimeError("boom")) is False

    def test_with_context_and_to_dict(self):
        cause = KeyError("x")
        err = AssignmentNotFoundError("a-1", cause=cause).with_context(network_id="10.0.0.1")
        d = err.to_dict()
        assert d["code"] == "NOT_FOUND"
        assert d["error_type"] == "AssignmentNotFoundError"
        assert d["context"]["network_id"] == "10.0.0.1"
        assert d["cause"] == str(cause)
        assert err.__cause__ is cause

    def test_default_category(self):
        assert FleetError("x").category == ErrorCategory.INTERNAL
