from __future__ import annotations

from app.api.errors import ApiErrorCode, not_found, to_error_payload, validation_error


def test_to_error_payload_preserves_structured_detail() -> None:
    payload = to_error_payload(
        {"error_code": "AUTH_TOKEN_INVALID", "message": "Invalid"},
        401,
    )

    assert payload == {
        "success": False,
        "error_code": "AUTH_TOKEN_INVALID",
        "message": "Invalid",
    }


def test_to_error_payload_normalizes_plain_string() -> None:
    payload = to_error_payload("boom", 500)

    assert payload == {"success": False, "error_code": "HTTP_500", "message": "boom"}


def test_error_helpers_carry_status_and_code() -> None:
    missing = not_found(ApiErrorCode.ORDER_NOT_FOUND, "Sale order not found: x")
    invalid = validation_error("bad sortBy")

    assert missing.status_code == 404
    assert missing.detail == {
        "error_code": "ORDER_NOT_FOUND",
        "message": "Sale order not found: x",
    }
    assert invalid.status_code == 400
    assert invalid.detail["error_code"] == "VALIDATION_ERROR"
