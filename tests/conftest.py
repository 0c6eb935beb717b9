"""Pytest configuration and fixtures for Fenix TFT tests."""

import base64
import json
from datetime import UTC, datetime
from typing import Any

import pytest

TEST_SUBJECT_ID = "user-1234"
TEST_CLIENT_ID = "fenix-mobile"


def create_test_jwt(
    exp_timestamp: int | None = None,
    **claims: Any,  # noqa: ANN401
) -> str:
    """Create a test JWT token with optional expiration timestamp.

    Args:
        exp_timestamp: Optional expiration timestamp. If None, defaults to
            two hours from now.
        **claims: Extra claims overriding the default subject and client id.

    Returns:
        A JWT token string with header, payload, and signature.

    """
    if exp_timestamp is None:
        exp_timestamp = int(datetime.now(UTC).timestamp()) + 7200

    header = {"alg": "RS256", "typ": "JWT"}
    payload = {
        "exp": exp_timestamp,
        "sub": TEST_SUBJECT_ID,
        "client_id": TEST_CLIENT_ID,
        **claims,
    }

    header_encoded = (
        base64.urlsafe_b64encode(json.dumps(header).encode()).decode().rstrip("=")
    )
    payload_encoded = (
        base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")
    )

    return f"{header_encoded}.{payload_encoded}.signature"


@pytest.fixture
def sample_access_token() -> str:
    """Fixture providing an access token valid for two hours."""
    return create_test_jwt()


@pytest.fixture
def expiring_access_token() -> str:
    """Fixture providing an access token expiring in ten minutes."""
    return create_test_jwt(int(datetime.now(UTC).timestamp()) + 600)


@pytest.fixture
def sample_refresh_token() -> str:
    """Fixture providing an opaque refresh token."""
    return "refresh-token-1"


@pytest.fixture
def sample_installations_response() -> list[dict[str, Any]]:
    """Fixture providing a sample installation listing.

    Returns:
        Two homes, one of them with two rooms, three thermostats in total.

    """
    return [
        {
            "name": "Home",
            "rooms": [
                {"name": "Living", "sensors": [{"S1": "sensor-1", "S2": "Living"}]},
                {"name": "Bath", "sensors": [{"S1": "sensor-2", "S2": "Bathroom"}]},
            ],
        },
        {
            "name": "Cottage",
            "rooms": [
                {"name": "Kitchen", "sensors": [{"S1": "sensor-3", "S2": "Kitchen"}]},
            ],
        },
    ]


@pytest.fixture
def sample_thermostat_content() -> dict[str, Any]:
    """Fixture providing a sample configuration content response.

    Returns:
        Thermostat at 50.0°F with a 55.0°F setpoint in manual mode.

    """
    return {
        "At": {"value": 500, "divFactor": 10},
        "Sp": {"value": 550, "divFactor": 10},
        "Dm": {"value": 6},
        "Ty": {"value": "TFT"},
        "Sv": {"value": "2.1.7"},
    }


@pytest.fixture
def sample_token_response() -> dict[str, Any]:
    """Fixture providing a sample token endpoint response."""
    return {
        "access_token": create_test_jwt(),
        "refresh_token": "refresh-token-2",
        "token_type": "Bearer",
        "expires_in": 7200,
    }
