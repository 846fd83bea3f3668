"""Tests for error handling utilities."""

import pytest
from httpx import Response

from apigee_client.auth.exceptions import AuthError
from apigee_client.errors.exceptions import (
    APIError,
    BadRequestError,
    ClientError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ServerError,
)
from apigee_client.errors.handler import raise_for_status


@pytest.mark.unit
def test_raise_for_status_success_response():
    """Test raise_for_status doesn't raise for successful responses."""
    raise_for_status(Response(status_code=200))
    raise_for_status(Response(status_code=201, json={"name": "proxy"}))
    raise_for_status(Response(status_code=204))


@pytest.mark.unit
def test_raise_for_status_400_bad_request():
    """Test raise_for_status raises BadRequestError for 400."""
    response = Response(
        status_code=400,
        headers={"content-type": "text/plain"},
        text="Bad request",
    )

    with pytest.raises(BadRequestError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.status_code == 400
    assert exc_info.value.response == response
    assert "400" in str(exc_info.value)


@pytest.mark.unit
@pytest.mark.parametrize("status_code", [401, 403])
def test_raise_for_status_auth_failures(status_code):
    """Test raise_for_status raises AuthError for 401 and 403."""
    response = Response(status_code=status_code, text="Unauthorized")

    with pytest.raises(AuthError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.status_code == status_code
    assert exc_info.value.body == "Unauthorized"


@pytest.mark.unit
def test_raise_for_status_404_not_found():
    """Test raise_for_status raises NotFoundError for 404 with Apigee detail."""
    response = Response(
        status_code=404,
        json={
            "code": "messaging.config.beans.ApplicationDoesNotExist",
            "message": "APIProxy named missing does not exist in organization org1",
            "contexts": [],
        },
    )

    with pytest.raises(NotFoundError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.status_code == 404
    assert exc_info.value.detail.code == "messaging.config.beans.ApplicationDoesNotExist"
    assert "does not exist in organization org1" in str(exc_info.value)


@pytest.mark.unit
def test_raise_for_status_409_conflict():
    """Test raise_for_status raises ConflictError for 409."""
    response = Response(status_code=409, text="Conflict")

    with pytest.raises(ConflictError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.status_code == 409


@pytest.mark.unit
def test_raise_for_status_429_rate_limit():
    """Test raise_for_status raises RateLimitError for 429."""
    response = Response(
        status_code=429,
        headers={"retry-after": "60"},
        text="Too many requests",
    )

    with pytest.raises(RateLimitError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 60


@pytest.mark.unit
def test_raise_for_status_429_without_retry_after():
    """Test raise_for_status handles 429 without retry-after header."""
    response = Response(status_code=429, text="Too many requests")

    with pytest.raises(RateLimitError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.retry_after is None


@pytest.mark.unit
def test_raise_for_status_4xx_generic():
    """Test raise_for_status raises ClientError for unmapped 4xx."""
    response = Response(status_code=418, text="I'm a teapot")

    with pytest.raises(ClientError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.status_code == 418
    assert not isinstance(exc_info.value, BadRequestError)


@pytest.mark.unit
def test_raise_for_status_5xx_server_error():
    """Test raise_for_status raises ServerError for 5xx with the body preserved."""
    response = Response(
        status_code=500,
        headers={"content-type": "text/plain"},
        text="Internal Server Error",
    )

    with pytest.raises(ServerError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == "Internal Server Error"
    assert "Internal Server Error" in str(exc_info.value)


@pytest.mark.unit
def test_raise_for_status_unexpected_status():
    """Test raise_for_status raises the APIError base for non-4xx/5xx failures."""
    response = Response(status_code=302, headers={"location": "/elsewhere"})

    with pytest.raises(APIError) as exc_info:
        raise_for_status(response)

    assert type(exc_info.value) is APIError
    assert str(exc_info.value) == "HTTP 302"


@pytest.mark.unit
def test_raise_for_status_fault_payload():
    """Test raise_for_status parses message-processor fault payloads."""
    response = Response(
        status_code=502,
        json={"fault": {"faultstring": "Unexpected EOF at target", "detail": {"errorcode": "messaging.adaptors.http.UnexpectedEOFAtTarget"}}},
    )

    with pytest.raises(ServerError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.detail.message == "Unexpected EOF at target"
    assert "messaging.adaptors.http.UnexpectedEOFAtTarget" in str(exc_info.value)
