"""Presentation helpers for Fenix thermostat state.

The Fenix API reports temperatures in degrees Fahrenheit. Conversion to the
configured display unit only happens here, when values are read or written
by the climate entity.
"""

from __future__ import annotations

from dataclasses import dataclass

from homeassistant.components.climate import HVACAction, HVACMode
from homeassistant.const import UnitOfTemperature
from homeassistant.util.unit_conversion import TemperatureConverter

from .const import MIN_HEATING_SETPOINT_C
from .models import ThermostatMode, ThermostatState

NATIVE_UNIT = UnitOfTemperature.FAHRENHEIT


@dataclass(frozen=True, slots=True)
class ThermostatPresentation:
    """Values exposed by the climate entity for one thermostat state."""

    current_temperature: float
    target_temperature: float
    hvac_mode: HVACMode
    hvac_action: HVACAction


def to_native(value: float, unit: str) -> float:
    """Convert a temperature in ``unit`` to the device native unit."""
    if unit == NATIVE_UNIT:
        return value
    return TemperatureConverter.convert(value, unit, NATIVE_UNIT)


def from_native(value: float, unit: str) -> float:
    """Convert a native temperature to ``unit``."""
    if unit == NATIVE_UNIT:
        return value
    return TemperatureConverter.convert(value, NATIVE_UNIT, unit)


def is_heating_setpoint(required_temperature: float) -> bool:
    """Return True if a native setpoint is high enough to count as heating."""
    return (
        from_native(required_temperature, UnitOfTemperature.CELSIUS)
        >= MIN_HEATING_SETPOINT_C
    )


def derive_presentation(state: ThermostatState, unit: str) -> ThermostatPresentation:
    """Derive the climate values for ``state`` in the display ``unit``.

    A thermostat in OFF mode is shown as off whatever its temperatures are.
    Otherwise it is heating while the setpoint is above the measured
    temperature, and its mode is HEAT while the setpoint is usable.
    """
    current_temperature = from_native(state.actual_temperature, unit)
    target_temperature = from_native(state.required_temperature, unit)

    if state.mode == ThermostatMode.OFF:
        return ThermostatPresentation(
            current_temperature=current_temperature,
            target_temperature=target_temperature,
            hvac_mode=HVACMode.OFF,
            hvac_action=HVACAction.OFF,
        )

    if state.required_temperature > state.actual_temperature:
        hvac_action = HVACAction.HEATING
    else:
        hvac_action = HVACAction.IDLE

    if is_heating_setpoint(state.required_temperature):
        hvac_mode = HVACMode.HEAT
    else:
        hvac_mode = HVACMode.OFF

    return ThermostatPresentation(
        current_temperature=current_temperature,
        target_temperature=target_temperature,
        hvac_mode=hvac_mode,
        hvac_action=hvac_action,
    )
