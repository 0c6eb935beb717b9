from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers import device_registry as dr

from . import api
from .api import create_session_client
from .const import (
    CONF_ACCESS_TOKEN,
    CONF_POLL_INTERVAL,
    CONF_REFRESH_TOKEN,
    CONF_TEMPERATURE_UNIT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TEMPERATURE_UNIT,
    DOMAIN,
)
from .coordinator import FenixDeviceCoordinator, FenixTokenCoordinator
from .inventory import (
    async_sync_device_registry,
    cached_accessories_from_registry,
    reconcile,
)
from .storage import FenixCredentialStore

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.CLIMATE]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up Fenix TFT integration for entry %s", entry.entry_id)

    if CONF_ACCESS_TOKEN not in entry.data or CONF_REFRESH_TOKEN not in entry.data:
        _LOGGER.error("Missing tokens in configuration for entry %s", entry.entry_id)
        return False

    session = create_session_client(hass)
    token_coordinator = FenixTokenCoordinator(
        hass,
        session,
        FenixCredentialStore(hass, entry.entry_id),
        entry.data[CONF_ACCESS_TOKEN],
        entry.data[CONF_REFRESH_TOKEN],
        config_entry=entry,
    )
    try:
        await token_coordinator.async_initialize()
    except api.CredentialDecodeError as err:
        _LOGGER.error("JWT token is not valid for entry %s: %s", entry.entry_id, err)
    await token_coordinator.async_refresh_if_needed()

    try:
        _LOGGER.debug("Fetching installations from Fenix API")
        devices = await api.async_get_installations(
            session, token_coordinator.current_token, token_coordinator.subject_id
        )
        _LOGGER.info(
            "Successfully retrieved %d thermostats from Fenix API", len(devices)
        )
    except api.FenixApiAuthError as err:
        _LOGGER.warning(
            "Authentication failed for entry %s: %s", entry.entry_id, str(err)
        )
        return False
    except api.InventoryFetchError as err:
        error_msg = f"Cannot retrieve installations: {err}"
        raise ConfigEntryNotReady(error_msg) from err

    device_registry = dr.async_get(hass)
    result = reconcile(
        devices, cached_accessories_from_registry(device_registry, entry.entry_id)
    )
    async_sync_device_registry(hass, entry, result)

    poll_interval = timedelta(
        minutes=entry.options.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL)
    )
    _LOGGER.debug("Thermostat check interval is %s", poll_interval)
    device_coordinators = [
        FenixDeviceCoordinator(
            hass,
            session,
            token_coordinator,
            record.device,
            poll_interval,
            config_entry=entry,
        )
        for record in (*result.to_register, *result.to_update)
        if record.device is not None
    ]
    await asyncio.gather(
        *(coordinator.async_refresh() for coordinator in device_coordinators)
    )

    @callback
    def _handle_token_update() -> None:
        _LOGGER.debug("Token check completed for entry %s", entry.entry_id)

    # The token coordinator only runs its refresh timer while it has a listener
    entry.async_on_unload(token_coordinator.async_add_listener(_handle_token_update))
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "session": session,
        "token_coordinator": token_coordinator,
        "device_coordinators": device_coordinators,
        "temperature_unit": entry.options.get(
            CONF_TEMPERATURE_UNIT, DEFAULT_TEMPERATURE_UNIT
        ),
    }
    _LOGGER.debug(
        "Stored data for entry %s: %d thermostats",
        entry.entry_id,
        len(device_coordinators),
    )

    try:
        await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
        _LOGGER.info(
            "Successfully setup Fenix TFT integration for entry %s", entry.entry_id
        )
        return True
    except Exception as err:
        _LOGGER.error("Failed to setup platforms for entry %s: %s", entry.entry_id, err)
        return False


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading Fenix TFT integration for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        if DOMAIN in hass.data and entry.entry_id in hass.data[DOMAIN]:
            hass.data[DOMAIN].pop(entry.entry_id)
            _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
    else:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)

    return unload_ok


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options changed."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Delete the persisted tokens of a removed entry."""
    await FenixCredentialStore(hass, entry.entry_id).async_remove()
