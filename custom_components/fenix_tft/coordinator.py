"""Coordinators for Fenix TFT Wifi integration."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import httpx
from homeassistant.components.climate import HVACMode
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import api
from .const import DOMAIN, HVAC_MODE_MAP, TOKEN_EXPIRY_SKEW, TOKEN_REFRESH_INTERVAL
from .inventory import async_update_device_details, device_uuid
from .models import (
    Credential,
    DeviceDescriptor,
    PendingWrite,
    SyncState,
    ThermostatMode,
    ThermostatState,
)
from .thermostat import is_heating_setpoint, to_native

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .storage import FenixCredentialStore

_LOGGER = logging.getLogger(__name__)


class FenixTokenCoordinator(DataUpdateCoordinator[Credential]):
    """Coordinator that keeps the Fenix access token fresh and persisted.

    ``data`` always holds the latest complete Credential. A refresh replaces
    it with a new object; it is never modified in place.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        session: httpx.AsyncClient,
        store: FenixCredentialStore,
        seed_access_token: str,
        seed_refresh_token: str,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        """Initialize the coordinator with the configured token pair."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_tokens",
            update_interval=TOKEN_REFRESH_INTERVAL,
        )
        self.session = session
        self.store = store
        self.data = Credential(
            access_token=seed_access_token,
            refresh_token=seed_refresh_token,
            claims=None,
        )

    @property
    def current_token(self) -> str:
        """Return the latest access token."""
        return self.data.access_token

    @property
    def subject_id(self) -> str:
        """Return the user id of the access token, or "" if it is not decoded."""
        claims = self.data.claims
        return claims.subject_id if claims else ""

    async def async_initialize(self) -> None:
        """Load the persisted token pair and decode it.

        On first boot the configured pair is persisted as is. If the store
        cannot be read, the configured pair is used but not persisted, so a
        stored pair is never overwritten.

        Raises:
            api.CredentialDecodeError: If the access token is not a valid JWT.
                The raw tokens are kept so that later calls fail at the API.

        """
        stored = None
        load_failed = False
        try:
            stored = await self.store.async_load()
        except (OSError, HomeAssistantError) as err:
            _LOGGER.error("Failed to load persisted tokens: %s", err)
            load_failed = True

        if stored is None:
            access_token = self.data.access_token
            refresh_token = self.data.refresh_token
            if load_failed:
                _LOGGER.warning("Using configured tokens without persisting them")
            else:
                _LOGGER.debug("Persisting configured tokens")
                await self._async_persist(access_token, refresh_token)
        else:
            _LOGGER.debug("Loading tokens from persisted credentials")
            access_token, refresh_token = stored

        try:
            self.data = api.create_credential(access_token, refresh_token)
        except api.CredentialDecodeError:
            self.data = Credential(
                access_token=access_token,
                refresh_token=refresh_token,
                claims=None,
            )
            raise

    def is_near_expiry(self, now: datetime | None = None) -> bool:
        """Return True if the access token expires within the skew window."""
        claims = self.data.claims
        if claims is None:
            return True

        if now is None:
            now = datetime.now(UTC)
        return now.timestamp() + TOKEN_EXPIRY_SKEW >= claims.expires_at

    async def async_refresh_if_needed(self) -> bool:
        """Refresh the token pair if the access token is near expiry.

        Failures are logged and leave the current credential in place; the
        next scheduled update tries again.

        Returns:
            True if a new credential was installed, False otherwise.

        """
        if not self.is_near_expiry():
            _LOGGER.debug(
                "Access token still valid until %s, no refresh needed",
                datetime.fromtimestamp(self.data.claims.expires_at, UTC).isoformat(),
            )
            return False

        credential = self.data
        if credential.claims is None or not credential.claims.client_id:
            _LOGGER.warning("Access token has no client id, cannot refresh tokens")
            return False

        try:
            access_token, refresh_token = await api.async_refresh_token(
                self.session,
                credential.access_token,
                credential.claims.client_id,
                credential.refresh_token,
            )
            new_credential = api.create_credential(access_token, refresh_token)
        except api.RefreshError as err:
            _LOGGER.error("Token is not possible to refresh: %s", err)
            return False
        except api.CredentialDecodeError as err:
            _LOGGER.error("Refreshed access token is not valid: %s", err)
            return False

        self.data = new_credential
        _LOGGER.info("Tokens are refreshed")
        await self._async_persist(access_token, refresh_token)
        return True

    async def _async_update_data(self) -> Credential:
        """Check token expiration and refresh if needed."""
        await self.async_refresh_if_needed()
        return self.data

    async def _async_persist(self, access_token: str, refresh_token: str) -> None:
        try:
            await self.store.async_save(access_token, refresh_token)
        except (OSError, HomeAssistantError) as err:
            _LOGGER.error("Failed to persist tokens: %s", err)


class FenixDeviceCoordinator(DataUpdateCoordinator[ThermostatState | None]):
    """Coordinator that polls one Fenix thermostat and writes user changes.

    ``data`` is the last state confirmed by a poll. Writes made since then
    are kept as a pending overlay until the next successful poll.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        session: httpx.AsyncClient,
        token_coordinator: FenixTokenCoordinator,
        device: DeviceDescriptor,
        poll_interval: timedelta,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_{device.remote_id}",
            update_interval=poll_interval,
        )
        self._session = session
        self._token_coordinator = token_coordinator
        self.device = device
        self.uuid = device_uuid(device.remote_id)
        self.data = None
        self._pending: PendingWrite | None = None
        self._sync_state = SyncState.UNINITIALIZED

    @property
    def sync_state(self) -> SyncState:
        """Return the synchronization state of the device."""
        return self._sync_state

    @property
    def pending(self) -> PendingWrite | None:
        """Return the values written since the last successful poll."""
        return self._pending

    @property
    def state(self) -> ThermostatState | None:
        """Return the last polled state with pending writes applied."""
        if self.data is None or self._pending is None:
            return self.data

        changes: dict[str, Any] = {}
        if self._pending.required_temperature is not None:
            changes["required_temperature"] = self._pending.required_temperature
        if self._pending.mode is not None:
            changes["mode"] = self._pending.mode
        return replace(self.data, **changes)

    async def _async_update_data(self) -> ThermostatState:
        """Fetch the thermostat state; the previous state is kept on failure."""
        _LOGGER.debug("Update Fenix TFT thermostat %s", self.device.display_name)
        try:
            state = await api.async_get_thermostat_state(
                self._session,
                self._token_coordinator.current_token,
                self.device.remote_id,
            )
        except api.FenixApiAuthError as err:
            error_msg = (
                f"Authentication error while polling {self.device.display_name}: {err}"
            )
            raise UpdateFailed(error_msg) from err
        except api.DeviceFetchError as err:
            error_msg = (
                f"Cannot retrieve data for thermostat {self.device.display_name}: {err}"
            )
            raise UpdateFailed(error_msg) from err

        self._pending = None
        self._sync_state = SyncState.SYNCED
        _LOGGER.debug("Polled %s: %s", self.device.display_name, state)
        async_update_device_details(self.hass, self.uuid, state)
        return state

    async def async_set_target_temperature(self, value: float, unit: str) -> None:
        """Set the target temperature, given in ``unit``.

        The value is applied locally before the write is confirmed. Setting
        the temperature it already has does not reach the API. The device
        switches to manual mode with every setpoint write.
        """
        native = round(to_native(value, unit), 1)
        if native == self._required_temperature():
            _LOGGER.debug(
                "%s: target temperature already %.1f°F, not sending",
                self.device.display_name,
                native,
            )
            return

        self._apply_pending(required_temperature=native, mode=ThermostatMode.MANUAL)
        await self._async_write("temperature", api.async_set_temperature, native)

    async def async_set_mode(self, hvac_mode: HVACMode) -> None:
        """Set the operating mode from a Home Assistant HVAC mode.

        HEAT is sent as a setpoint write in manual mode with the current
        target temperature, all other modes as a mode write.
        """
        mode = HVAC_MODE_MAP.get(hvac_mode)
        if mode is None:
            _LOGGER.warning(
                "%s: unsupported HVAC mode %s", self.device.display_name, hvac_mode
            )
            return

        if mode == ThermostatMode.MANUAL:
            required = self._required_temperature()
            if required is not None:
                if not is_heating_setpoint(required):
                    _LOGGER.warning(
                        "%s: target temperature %.1f°F is in the antifreeze range, "
                        "thermostat stays shown as off",
                        self.device.display_name,
                        required,
                    )
                self._apply_pending(required_temperature=required, mode=mode)
                await self._async_write(
                    "temperature", api.async_set_temperature, required
                )
                return
            _LOGGER.debug(
                "%s: no target temperature known yet, sending manual mode only",
                self.device.display_name,
            )

        self._apply_pending(mode=mode)
        await self._async_write("mode", api.async_set_mode, mode)

    def _required_temperature(self) -> float | None:
        if self._pending is not None and self._pending.required_temperature is not None:
            return self._pending.required_temperature
        if self.data is not None:
            return self.data.required_temperature
        return None

    def _apply_pending(self, **changes: Any) -> None:  # noqa: ANN401
        self._pending = replace(self._pending or PendingWrite(), **changes)
        self._sync_state = SyncState.PENDING_CONFIRM
        self.async_update_listeners()

    async def _async_write(
        self,
        description: str,
        write: Callable[..., Awaitable[None]],
        value: Any,  # noqa: ANN401
    ) -> bool:
        """Send a write; a failure is logged and the pending value is kept."""
        try:
            await write(
                self._session,
                self._token_coordinator.current_token,
                self.device.remote_id,
                value,
            )
        except api.FenixApiClientError as err:
            _LOGGER.error(
                "Cannot set %s for thermostat %s: %s",
                description,
                self.device.display_name,
                err,
            )
            return False
        return True
