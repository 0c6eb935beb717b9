"""API client for Fenix TFT Wifi thermostats.

This module provides functions to interact with the Fenix cloud API,
including token refresh, installation listing, state polling and
setpoint/mode writes.
"""

import base64
import json
import logging
from typing import Any

import httpx
from homeassistant.core import HomeAssistant
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import API_URL, IDENTITY_URL, WATTS_TYPE_MODE, WATTS_TYPE_SETPOINT
from .models import (
    Credential,
    DeviceDescriptor,
    ThermostatMode,
    ThermostatState,
    TokenClaims,
)

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401


class FenixApiClientError(Exception):
    """Base exception for Fenix API client errors."""


class FenixApiAuthError(FenixApiClientError):
    """Exception raised when the API rejects the bearer token."""


class CredentialDecodeError(FenixApiClientError):
    """Exception raised when an access token is not a well-formed JWT."""


class RefreshError(FenixApiClientError):
    """Exception raised when the refresh token grant fails."""


class InventoryFetchError(FenixApiClientError):
    """Exception raised when the installation listing cannot be fetched."""


class DeviceFetchError(FenixApiClientError):
    """Exception raised when a thermostat state cannot be fetched."""


class DeviceWriteError(FenixApiClientError):
    """Exception raised when a setpoint or mode write fails."""


def create_headers(access_token: str) -> dict[str, str]:
    """Create HTTP headers for authorized Fenix API requests.

    Args:
        access_token: Bearer token presented on the request.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    return {
        "Content-type": "application/json",
        "Authorization": f"Bearer {access_token}",
    }


def create_headers_refresh(access_token: str) -> dict[str, str]:
    """Create HTTP headers for the token endpoint.

    The identity server expects the current access token as Basic credential.
    """
    return {
        "Content-Type": "application/x-www-form-urlencoded",
        "Authorization": f"Basic {access_token}",
    }


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates authentication error."""
    return status == HTTP_UNAUTHORIZED


def validate_response(response: httpx.Response) -> Any:  # noqa: ANN401
    """Validate HTTP response and return parsed JSON data.

    Args:
        response: HTTP response object to validate.

    Returns:
        Parsed JSON data from response.

    Raises:
        FenixApiAuthError: If authentication error is detected.
        FenixApiClientError: If the request failed or the body is not JSON.

    """
    _validate_http_status(response)
    try:
        return response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON in response: {err}"
        raise FenixApiClientError(error_msg) from err


def _validate_http_status(response: httpx.Response) -> None:
    if not is_http_error(response.status_code):
        return

    if is_auth_error(response.status_code):
        auth_error = "Authentication error"
        raise FenixApiAuthError(auth_error)

    client_error = f"Request failed: {response.status_code}"
    raise FenixApiClientError(client_error)


def decode_token_claims(token: str) -> TokenClaims:
    """Decode the payload claims of a JWT access token.

    The signature is not verified; the token is only inspected for its
    expiry, subject and client id.

    Args:
        token: JWT token string.

    Returns:
        TokenClaims decoded from the token payload.

    Raises:
        CredentialDecodeError: If token is malformed or missing 'exp' claim.

    """
    jwt_parts_count = 3
    base64_padding_mod = 4

    def _raise_value_error(message: str) -> None:
        """Raise ValueError with the given message."""
        raise ValueError(message)

    try:
        parts = token.split(".")
        if len(parts) != jwt_parts_count:
            error_msg = "Invalid JWT format: expected 3 parts"
            _raise_value_error(error_msg)

        payload_encoded = parts[1]
        padding = len(payload_encoded) % base64_padding_mod
        if padding:
            payload_encoded += "=" * (base64_padding_mod - padding)

        payload_bytes = base64.urlsafe_b64decode(payload_encoded)
        payload = json.loads(payload_bytes.decode("utf-8"))
        if not isinstance(payload, dict):
            error_msg = "JWT payload is not an object"
            _raise_value_error(error_msg)

        exp_timestamp = payload.get("exp")
        if exp_timestamp is None:
            error_msg = "JWT token missing 'exp' claim"
            _raise_value_error(error_msg)

        return TokenClaims(
            expires_at=int(exp_timestamp),
            subject_id=str(payload.get("sub", "")),
            client_id=str(payload.get("client_id", "")),
        )

    except (ValueError, TypeError, AttributeError) as err:
        error_msg = f"Failed to decode JWT token: {err}"
        raise CredentialDecodeError(error_msg) from err


def create_credential(access_token: str, refresh_token: str) -> Credential:
    """Create a Credential with claims derived from the access token.

    Raises:
        CredentialDecodeError: If the access token cannot be decoded.

    """
    return Credential(
        access_token=access_token,
        refresh_token=refresh_token,
        claims=decode_token_claims(access_token),
    )


def extract_devices(data: Any) -> list[DeviceDescriptor]:  # noqa: ANN401
    """Flatten the home -> rooms -> sensors listing into device descriptors.

    Args:
        data: Installation listing returned by the API.

    Returns:
        List of DeviceDescriptor objects, in listing order.

    Raises:
        InventoryFetchError: If the listing does not have the expected shape.

    """
    if not isinstance(data, list):
        error_msg = "Unexpected installation listing format"
        raise InventoryFetchError(error_msg)

    devices = []
    try:
        for home in data:
            for room in home.get("rooms") or []:
                for sensor in room.get("sensors") or []:
                    devices.append(
                        DeviceDescriptor(
                            remote_id=str(sensor["S1"]),
                            display_name=str(sensor.get("S2") or sensor["S1"]),
                        )
                    )
    except (KeyError, AttributeError, TypeError) as err:
        error_msg = f"Malformed installation listing: {err}"
        raise InventoryFetchError(error_msg) from err
    return devices


def _decode_temperature(data: dict[str, Any], key: str) -> float:
    """Decode a ``{value, divFactor}`` property into degrees Fahrenheit."""
    entry = data[key]
    div_factor = entry.get("divFactor") or 1
    return entry["value"] / div_factor


def _decode_mode(code: Any) -> ThermostatMode:  # noqa: ANN401
    """Decode the ``Dm`` property into a ThermostatMode."""
    try:
        return ThermostatMode(int(code))
    except (TypeError, ValueError):
        _LOGGER.warning("Unknown thermostat mode code: %s, assuming manual", code)
        return ThermostatMode.MANUAL


def extract_thermostat_state(data: Any) -> ThermostatState:  # noqa: ANN401
    """Extract a ThermostatState from a configuration content response.

    Property keys:
        At: Actual (measured) temperature
        Sp: Required setpoint
        Dm: Device mode
        Ty: Thermostat type (model)
        Sv: Software version

    Raises:
        DeviceFetchError: If the temperatures are missing or malformed.

    """
    try:
        return ThermostatState(
            actual_temperature=_decode_temperature(data, "At"),
            required_temperature=_decode_temperature(data, "Sp"),
            mode=_decode_mode(data.get("Dm", {}).get("value")),
            model=str(data.get("Ty", {}).get("value", "")),
            software_version=str(data.get("Sv", {}).get("value", "")),
        )
    except (KeyError, AttributeError, TypeError) as err:
        error_msg = f"Malformed thermostat content: {err}"
        raise DeviceFetchError(error_msg) from err


def build_twin_payload(
    remote_id: str, properties: list[tuple[str, int]]
) -> dict[str, Any]:
    """Build the body of a twin properties replace request.

    Args:
        remote_id: Remote device identifier.
        properties: (typeCode, value) pairs to write.

    Returns:
        JSON-serializable request body.

    """
    return {
        "Id_deviceId": remote_id,
        "S1": remote_id,
        "configurationVersion": "v1.0",
        "data": [
            {"timestamp": None, "wattsType": type_code, "wattsTypeValue": value}
            for type_code, value in properties
        ],
    }


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for Fenix API.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=10.0)
    retry = Retry(total=3, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


async def _async_request(
    session: httpx.AsyncClient,
    method: str,
    url: str,
    error_cls: type[FenixApiClientError],
    **kwargs: Any,  # noqa: ANN401
) -> httpx.Response:
    """Send a request and map failures onto ``error_cls``.

    Authentication errors are re-raised unchanged so callers can tell a
    rejected token from an unreachable service.
    """
    try:
        response = await session.request(method, url, **kwargs)
        _validate_http_status(response)
    except FenixApiAuthError:
        raise
    except FenixApiClientError as err:
        raise error_cls(str(err)) from err
    except httpx.RequestError as err:
        error_msg = f"Connection error: {err}"
        raise error_cls(error_msg) from err
    return response


async def async_refresh_token(
    session: httpx.AsyncClient,
    access_token: str,
    client_id: str,
    refresh_token: str,
) -> tuple[str, str]:
    """Exchange the refresh token for a new access/refresh token pair.

    Args:
        session: HTTP client session.
        access_token: Current (possibly expired) access token.
        client_id: OAuth client id from the access token claims.
        refresh_token: Current refresh token.

    Returns:
        Tuple of (access_token, refresh_token).

    Raises:
        RefreshError: If the identity endpoint is unreachable or rejects the
            grant.

    """
    url = f"{IDENTITY_URL}/connect/token"
    form = {
        "grant_type": "refresh_token",
        "client_id": client_id,
        "refresh_token": refresh_token,
    }

    _LOGGER.debug("Refreshing tokens with Fenix identity server")
    try:
        response = await session.post(
            url, headers=create_headers_refresh(access_token), data=form
        )
        data = validate_response(response)
        new_tokens = (str(data["access_token"]), str(data["refresh_token"]))
    except (FenixApiClientError, httpx.RequestError) as err:
        error_msg = f"Token refresh failed: {err}"
        raise RefreshError(error_msg) from err
    except (KeyError, TypeError) as err:
        error_msg = f"Token response missing field: {err}"
        raise RefreshError(error_msg) from err

    _LOGGER.debug("Successfully refreshed tokens with Fenix identity server")
    return new_tokens


async def async_get_installations(
    session: httpx.AsyncClient,
    access_token: str,
    subject_id: str,
) -> list[DeviceDescriptor]:
    """Fetch the thermostats of every installation administered by the user.

    Args:
        session: HTTP client session.
        access_token: Bearer token.
        subject_id: User id (``sub`` claim of the access token).

    Returns:
        List of DeviceDescriptor objects.

    Raises:
        FenixApiAuthError: If the token is rejected.
        InventoryFetchError: If the listing is unavailable or malformed.

    """
    url = f"{API_URL}/businessmodule/v1/installations/admins/{subject_id}"

    _LOGGER.debug("Fetching installations from Fenix API")
    response = await _async_request(
        session, "GET", url, InventoryFetchError, headers=create_headers(access_token)
    )
    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON in installation listing: {err}"
        raise InventoryFetchError(error_msg) from err
    devices = extract_devices(data)
    _LOGGER.debug("Retrieved %d thermostats from Fenix API", len(devices))
    return devices


async def async_get_thermostat_state(
    session: httpx.AsyncClient,
    access_token: str,
    remote_id: str,
) -> ThermostatState:
    """Fetch the current state of a thermostat.

    Raises:
        FenixApiAuthError: If the token is rejected.
        DeviceFetchError: If the state is unavailable or malformed.

    """
    url = (
        f"{API_URL}/iotmanagement/v1/configuration/"
        f"{remote_id}/{remote_id}/v1.0/content"
    )

    _LOGGER.debug("Fetching state for thermostat %s", remote_id)
    response = await _async_request(
        session, "GET", url, DeviceFetchError, headers=create_headers(access_token)
    )
    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON in thermostat content: {err}"
        raise DeviceFetchError(error_msg) from err
    return extract_thermostat_state(data)


async def _async_replace_properties(
    session: httpx.AsyncClient,
    access_token: str,
    remote_id: str,
    properties: list[tuple[str, int]],
) -> None:
    url = f"{API_URL}/iotmanagement/v1/devices/twin/properties/config/replace"
    await _async_request(
        session,
        "PUT",
        url,
        DeviceWriteError,
        headers=create_headers(access_token),
        json=build_twin_payload(remote_id, properties),
    )


async def async_set_temperature(
    session: httpx.AsyncClient,
    access_token: str,
    remote_id: str,
    fahrenheit: float,
) -> None:
    """Switch the thermostat to manual mode and set its setpoint.

    The setpoint is sent in tenths of a degree Fahrenheit.

    Raises:
        FenixApiAuthError: If the token is rejected.
        DeviceWriteError: If the write fails.

    """
    _LOGGER.debug("Setting thermostat %s to %.1f°F", remote_id, fahrenheit)
    await _async_replace_properties(
        session,
        access_token,
        remote_id,
        [
            (WATTS_TYPE_MODE, int(ThermostatMode.MANUAL)),
            (WATTS_TYPE_SETPOINT, round(fahrenheit * 10)),
        ],
    )


async def async_set_mode(
    session: httpx.AsyncClient,
    access_token: str,
    remote_id: str,
    mode: ThermostatMode,
) -> None:
    """Change the operating mode of the thermostat.

    Raises:
        FenixApiAuthError: If the token is rejected.
        DeviceWriteError: If the write fails.

    """
    _LOGGER.debug("Setting thermostat %s mode to %s", remote_id, mode.name)
    await _async_replace_properties(
        session, access_token, remote_id, [(WATTS_TYPE_MODE, int(mode))]
    )
