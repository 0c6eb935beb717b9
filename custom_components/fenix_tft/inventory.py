"""Reconciliation of the remote Fenix inventory with the device registry."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import replace
from typing import TYPE_CHECKING

from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import device_registry as dr

from .const import DOMAIN, FENIX_NAMESPACE, MANUFACTURER, MODEL
from .models import (
    AccessoryRecord,
    DeviceDescriptor,
    ReconcileResult,
    ThermostatState,
)

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

_LOGGER = logging.getLogger(__name__)


def device_uuid(remote_id: str) -> str:
    """Return the stable local identity of a remote thermostat."""
    return str(uuid.uuid5(FENIX_NAMESPACE, remote_id))


def reconcile(
    remote_devices: Sequence[DeviceDescriptor],
    cached_accessories: Sequence[AccessoryRecord],
) -> ReconcileResult:
    """Diff the remote listing against the cached accessories.

    Every remote device ends up in exactly one of ``to_register`` or
    ``to_update``; every cached accessory whose identity is no longer listed
    ends up in ``to_retire``. An empty listing retires everything.

    Args:
        remote_devices: Devices returned by the installation listing.
        cached_accessories: Accessories currently known locally.

    Returns:
        ReconcileResult with the three disjoint sets.

    """
    cached_by_uuid = {record.uuid: record for record in cached_accessories}
    active_ids: set[str] = set()
    to_register: list[AccessoryRecord] = []
    to_update: list[AccessoryRecord] = []

    for device in remote_devices:
        identity = device_uuid(device.remote_id)
        if identity in active_ids:
            _LOGGER.debug(
                "Ignoring duplicate listing of thermostat %s", device.remote_id
            )
            continue
        active_ids.add(identity)

        existing = cached_by_uuid.get(identity)
        if existing is not None:
            to_update.append(
                replace(existing, display_name=device.display_name, device=device)
            )
        else:
            to_register.append(
                AccessoryRecord(
                    uuid=identity, display_name=device.display_name, device=device
                )
            )

    to_retire = [
        record for record in cached_accessories if record.uuid not in active_ids
    ]

    return ReconcileResult(
        to_register=tuple(to_register),
        to_update=tuple(to_update),
        to_retire=tuple(to_retire),
    )


def cached_accessories_from_registry(
    device_registry: dr.DeviceRegistry, entry_id: str
) -> list[AccessoryRecord]:
    """Build accessory records from the registry devices of a config entry."""
    records = []
    for device_entry in dr.async_entries_for_config_entry(device_registry, entry_id):
        identity = next(
            (value for domain, value in device_entry.identifiers if domain == DOMAIN),
            None,
        )
        if identity is None:
            continue
        records.append(
            AccessoryRecord(
                uuid=identity,
                display_name=device_entry.name or identity,
                registry_id=device_entry.id,
            )
        )
    return records


@callback
def async_sync_device_registry(
    hass: HomeAssistant, entry: ConfigEntry, result: ReconcileResult
) -> None:
    """Register, update and retire registry devices according to ``result``."""
    device_registry = dr.async_get(hass)

    for record in result.to_update:
        _LOGGER.info(
            "[%s] [%s]: Restoring existing Fenix TFT thermostat",
            record.device.remote_id if record.device else record.uuid,
            record.display_name,
        )
    for record in result.to_register:
        _LOGGER.info(
            "[%s] [%s]: Adding new Fenix TFT thermostat",
            record.device.remote_id if record.device else record.uuid,
            record.display_name,
        )

    for record in (*result.to_register, *result.to_update):
        device_registry.async_get_or_create(
            config_entry_id=entry.entry_id,
            identifiers={(DOMAIN, record.uuid)},
            manufacturer=MANUFACTURER,
            model=MODEL,
            name=record.display_name,
        )

    for record in result.to_retire:
        _LOGGER.debug(
            "[%s] [%s]: Removing unused Fenix TFT thermostat",
            record.uuid,
            record.display_name,
        )
        if record.registry_id is None:
            continue
        try:
            device_registry.async_update_device(
                record.registry_id, remove_config_entry_id=entry.entry_id
            )
        except (HomeAssistantError, KeyError, ValueError) as err:
            _LOGGER.error(
                "Error while removing thermostat %s: %s", record.display_name, err
            )


@callback
def async_update_device_details(
    hass: HomeAssistant, identity: str, state: ThermostatState
) -> None:
    """Publish the model and firmware reported by a thermostat on its device."""
    device_registry = dr.async_get(hass)
    device_entry = device_registry.async_get_device(identifiers={(DOMAIN, identity)})
    if device_entry is None:
        return

    model = f"{MODEL} {state.model}".strip()
    sw_version = state.software_version or None
    if device_entry.model == model and device_entry.sw_version == sw_version:
        return

    _LOGGER.debug(
        "[%s]: Updating device details to %s, firmware %s", identity, model, sw_version
    )
    device_registry.async_update_device(
        device_entry.id, model=model, sw_version=sw_version
    )
