"""Data models for Fenix TFT Wifi integration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum


class ThermostatMode(IntEnum):
    """Device-level operating mode, as reported in the ``Dm`` property."""

    OFF = 0
    AUTO = 1
    ANTIFREEZE = 5
    MANUAL = 6


class SyncState(StrEnum):
    """Synchronization state of a single device."""

    UNINITIALIZED = "uninitialized"
    SYNCED = "synced"
    PENDING_CONFIRM = "pending_confirm"


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Claims decoded from the access token payload."""

    expires_at: int
    subject_id: str
    client_id: str


@dataclass(frozen=True, slots=True)
class Credential:
    """Access/refresh token pair with the claims decoded from the access token.

    ``claims`` is None when the access token could not be decoded.
    """

    access_token: str
    refresh_token: str
    claims: TokenClaims | None


@dataclass(frozen=True, slots=True)
class DeviceDescriptor:
    """Identity of a thermostat as listed by the remote installation API."""

    remote_id: str
    display_name: str


@dataclass(frozen=True, slots=True)
class ThermostatState:
    """Thermostat snapshot. Temperatures are in degrees Fahrenheit."""

    actual_temperature: float
    required_temperature: float
    mode: ThermostatMode
    model: str
    software_version: str


@dataclass(frozen=True, slots=True)
class PendingWrite:
    """Optimistic values sent to the device but not yet confirmed by a poll."""

    required_temperature: float | None = None
    mode: ThermostatMode | None = None


@dataclass(frozen=True, slots=True)
class AccessoryRecord:
    """A thermostat known to the local device registry."""

    uuid: str
    display_name: str
    device: DeviceDescriptor | None = None
    cached_state: ThermostatState | None = None
    registry_id: str | None = None


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Outcome of diffing the remote inventory against the local registry."""

    to_register: tuple[AccessoryRecord, ...]
    to_update: tuple[AccessoryRecord, ...]
    to_retire: tuple[AccessoryRecord, ...]
