import json
from datetime import datetime, timezone

import httpx

from src.domain.exceptions import (
    API_KEY_INVALID_MESSAGE,
    GamePlanAuthError,
    GamePlanError,
    GamePlanRequestError,
    GamePlanTransientError,
    QueryValidationError,
    classify_http_error,
    is_auth_error,
)


def _status_error(status: int, body=None) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://gameplan.example.com/api/resource/GP%20Task")
    response = httpx.Response(status, json=body if body is not None else {}, request=request)
    return httpx.HTTPStatusError("boom", request=request, response=response)


def test_unauthorized_response_is_auth_error():
    error = classify_http_error(_status_error(401))

    assert isinstance(error, GamePlanAuthError)
    assert is_auth_error(error)
    assert error.user_message() == API_KEY_INVALID_MESSAGE


def test_api_key_message_in_payload_is_auth_error_regardless_of_status():
    error = classify_http_error(_status_error(417, {"message": "Invalid API key provided"}))

    assert isinstance(error, GamePlanAuthError)


def test_server_and_rate_limit_errors_are_transient():
    assert isinstance(classify_http_error(_status_error(503)), GamePlanTransientError)
    assert isinstance(classify_http_error(_status_error(429)), GamePlanTransientError)
    assert isinstance(classify_http_error(httpx.ConnectError("refused")), GamePlanTransientError)

    timeout = classify_http_error(httpx.ReadTimeout("slow"))
    assert isinstance(timeout, GamePlanTransientError)
    assert timeout.status_code == 504
    assert timeout.user_message().startswith("Request timed out")


def test_other_client_errors_are_request_errors_with_friendly_messages():
    not_found = classify_http_error(_status_error(404))
    forbidden = classify_http_error(_status_error(403))

    assert isinstance(not_found, GamePlanRequestError)
    assert "not found" in not_found.user_message()
    assert isinstance(forbidden, GamePlanRequestError)
    assert forbidden.user_message() == "Access forbidden. Please check your API key permissions."


def test_to_dict_is_json_serializable():
    error = GamePlanRequestError(
        "failed",
        status_code=400,
        status_text="Bad Request",
        payload={"at": datetime(2024, 1, 1, tzinfo=timezone.utc), "items": {1, 2}, "obj": object()},
    )

    data = error.to_dict()

    json.dumps(data)
    assert data["kind"] == "request"
    assert data["data"]["at"] == "2024-01-01T00:00:00+00:00"


def test_query_validation_error_keeps_message():
    error = QueryValidationError("Unknown query type: NOPE")

    assert isinstance(error, GamePlanError)
    assert error.status_code == 400
    assert error.to_dict()["message"] == "Unknown query type: NOPE"
    assert not is_auth_error(error)
