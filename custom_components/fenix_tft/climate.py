"""Climate entities for Fenix TFT Wifi thermostats.

This module exposes each Fenix thermostat as a Home Assistant climate
entity. State comes from the per-device coordinator; user changes are
forwarded to it and shown optimistically until the next poll.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.climate import (
    ClimateEntity,
    ClimateEntityFeature,
    HVACAction,
    HVACMode,
)
from homeassistant.const import ATTR_TEMPERATURE
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.restore_state import RestoreEntity

from .const import DOMAIN, MANUFACTURER, MODEL, TEMPERATURE_LIMITS
from .thermostat import derive_presentation

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import FenixDeviceCoordinator

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up climate entities for Fenix thermostats."""
    entry_data = hass.data[DOMAIN][entry.entry_id]

    entities = [
        FenixThermostatClimateEntity(device_coordinator, entry_data["temperature_unit"])
        for device_coordinator in entry_data["device_coordinators"]
    ]
    async_add_entities(entities)


class FenixThermostatClimateEntity(ClimateEntity, RestoreEntity):
    """Climate entity for a Fenix TFT Wifi thermostat."""

    _attr_has_entity_name = True
    _attr_name = None
    _attr_should_poll = False
    _attr_hvac_modes = [HVACMode.OFF, HVACMode.HEAT, HVACMode.COOL, HVACMode.AUTO]
    _attr_supported_features = (
        ClimateEntityFeature.TARGET_TEMPERATURE
        | ClimateEntityFeature.TURN_OFF
        | ClimateEntityFeature.TURN_ON
    )

    def __init__(
        self,
        device_coordinator: FenixDeviceCoordinator,
        temperature_unit: str,
    ) -> None:
        """Initialize the Fenix climate entity.

        Args:
            device_coordinator: Coordinator polling this thermostat.
            temperature_unit: Unit in which temperatures are presented.

        """
        self._device_coordinator = device_coordinator
        self._device = device_coordinator.device
        self._attr_unique_id = device_coordinator.uuid
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, device_coordinator.uuid)},
            manufacturer=MANUFACTURER,
            model=MODEL,
            name=self._device.display_name,
        )

        self._attr_temperature_unit = temperature_unit
        min_temp, max_temp, step = TEMPERATURE_LIMITS[temperature_unit]
        self._attr_min_temp = min_temp
        self._attr_max_temp = max_temp
        self._attr_target_temperature_step = step

        self._attr_hvac_mode = HVACMode.OFF
        self._attr_hvac_action = HVACAction.OFF
        self._attr_current_temperature = None
        self._attr_target_temperature = None
        self._coordinator_listener_unsub = None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return model information and synchronization state."""
        attributes: dict[str, Any] = {
            "sync_state": self._device_coordinator.sync_state.value,
        }
        state = self._device_coordinator.state
        if state is not None:
            attributes["model"] = f"{MODEL} {state.model}".strip()
            attributes["software_version"] = state.software_version
        return attributes

    async def async_added_to_hass(self) -> None:
        """Subscribe to the coordinator.

        Until the first poll succeeds the last Home Assistant state is shown.
        """
        await super().async_added_to_hass()

        self._coordinator_listener_unsub = self._device_coordinator.async_add_listener(
            self._handle_coordinator_update
        )

        if self._device_coordinator.state is not None:
            self._update_from_coordinator()
        elif last_state := await self.async_get_last_state():
            try:
                self._attr_hvac_mode = HVACMode(last_state.state)
            except ValueError:
                self._attr_hvac_mode = HVACMode.OFF
            self._attr_target_temperature = last_state.attributes.get(ATTR_TEMPERATURE)
            self._attr_current_temperature = last_state.attributes.get(
                "current_temperature"
            )
            _LOGGER.debug("Restored state for %s", self._device.display_name)

    async def async_will_remove_from_hass(self) -> None:
        """Unsubscribe from the coordinator."""
        await super().async_will_remove_from_hass()

        if self._coordinator_listener_unsub is not None:
            self._coordinator_listener_unsub()
            self._coordinator_listener_unsub = None

    def _handle_coordinator_update(self) -> None:
        """Push a new coordinator state to Home Assistant."""
        self._update_from_coordinator()
        self.async_write_ha_state()

    def _update_from_coordinator(self) -> None:
        """Copy the presented values of the coordinator state."""
        state = self._device_coordinator.state
        if state is None:
            _LOGGER.debug("%s: No thermostat state yet", self._device.display_name)
            return

        presentation = derive_presentation(state, self.temperature_unit)
        self._attr_current_temperature = presentation.current_temperature
        self._attr_target_temperature = presentation.target_temperature
        self._attr_hvac_mode = presentation.hvac_mode
        self._attr_hvac_action = presentation.hvac_action
        _LOGGER.debug(
            "Updated %s from coordinator: %s", self._device.display_name, state
        )

    async def async_set_temperature(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Forward a new setpoint, given in the display unit."""
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return

        _LOGGER.debug(
            "Triggered SET TargetTemperature for %s: %s",
            self._device.display_name,
            temperature,
        )
        await self._device_coordinator.async_set_target_temperature(
            temperature, self.temperature_unit
        )

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Forward a new HVAC mode to the coordinator."""
        _LOGGER.debug(
            "Triggered SET HVAC mode for %s: %s", self._device.display_name, hvac_mode
        )
        await self._device_coordinator.async_set_mode(hvac_mode)

    async def async_turn_on(self) -> None:
        """Turn the thermostat on in manual heating mode.

        The current setpoint is kept. A setpoint below 7 °C is antifreeze, so
        the thermostat is still shown as off until a higher one is set.
        """
        await self.async_set_hvac_mode(HVACMode.HEAT)

    async def async_turn_off(self) -> None:
        """Turn the thermostat off."""
        await self.async_set_hvac_mode(HVACMode.OFF)
