"""
Tests for the failure classification system.

Every failure the service can explain must reach the client as a JSON
body with a stable ``kind``, never as a raw 500.
"""

import json

import pytest

from pokeshelf.main import known_error_handler
from pokeshelf.models.failure import (
    EntryNotFoundError,
    FailureKind,
    FetchError,
    KnownError,
    OfflineError,
    RemoteStoreError,
    invalid_input,
)


class TestKnownErrorException:
    """Tests for KnownError exception handling."""

    def test_known_error_converts_to_detail(self) -> None:
        """KnownError converts to a FailureDetail correctly."""
        error = KnownError(
            kind=FailureKind.INVALID_INPUT,
            message="Invalid format",
            detail="Expected JSON",
            status_code=400,
        )

        detail = error.to_detail()

        assert detail.kind == FailureKind.INVALID_INPUT
        assert detail.message == "Invalid format"
        assert detail.detail == "Expected JSON"

    def test_known_error_preserves_status_code(self) -> None:
        """KnownError preserves HTTP status code."""
        error = KnownError(kind=FailureKind.NOT_FOUND, message="Not found", status_code=404)

        assert error.status_code == 404

    def test_invalid_input_collects_detail(self) -> None:
        error = invalid_input("Quantity must be a positive integer", quantity=0)

        assert error.kind == FailureKind.INVALID_INPUT
        assert error.detail == "quantity=0"
        assert error.status_code == 400


class TestSubclasses:
    @pytest.mark.parametrize(
        ("error", "kind", "status_code"),
        [
            (FetchError("HTTP 500", http_status=500), FailureKind.EXTERNAL_API_ERROR, 502),
            (RemoteStoreError("down", retryable=True), FailureKind.STORE_UNAVAILABLE, 503),
            (RemoteStoreError("no", retryable=False), FailureKind.CONSTRAINT_VIOLATION, 422),
            (
                RemoteStoreError("gone", retryable=False, kind=FailureKind.NOT_FOUND),
                FailureKind.NOT_FOUND,
                404,
            ),
            (OfflineError("offline"), FailureKind.OFFLINE, 503),
            (EntryNotFoundError("p1", "e1"), FailureKind.NOT_FOUND, 404),
        ],
    )
    def test_classification(self, error: KnownError, kind: FailureKind, status_code: int) -> None:
        """Each failure type carries a fixed kind and HTTP status."""
        assert error.kind == kind
        assert error.status_code == status_code

    def test_fetch_error_wraps_message(self) -> None:
        error = FetchError("HTTP 404: Not Found", http_status=404)

        assert error.message.startswith("Card catalog error:")
        assert "HTTP 404" in str(error)
        assert error.detail == "HTTP 404"

    def test_offline_error_suggests_reconnecting(self) -> None:
        assert OfflineError("offline").suggestion is not None


class TestExceptionHandler:
    async def test_known_error_rendered_as_json(self) -> None:
        """Handled errors keep their status and carry their kind."""
        response = await known_error_handler(None, EntryNotFoundError("p1", "e1"))

        body = json.loads(response.body)
        assert response.status_code == 404
        assert body["kind"] == "not_found"
        assert "e1" in body["message"]
