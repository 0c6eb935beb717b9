"""
Configuration flow for Fenix TFT Wifi integration.

This module handles the setup of the integration from an access/refresh
token pair, and the options controlling polling and display unit.
"""

import logging
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import UnitOfTemperature
from homeassistant.core import callback
from homeassistant.helpers.httpx_client import get_async_client

from . import api
from .const import (
    CONF_ACCESS_TOKEN,
    CONF_POLL_INTERVAL,
    CONF_REFRESH_TOKEN,
    CONF_TEMPERATURE_UNIT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TEMPERATURE_UNIT,
    DOMAIN,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_INVALID_TOKEN,
    ERROR_UNKNOWN,
    MAX_POLL_INTERVAL,
    MIN_POLL_INTERVAL,
)

_LOGGER = logging.getLogger(__name__)


def options_schema(poll_interval: int, temperature_unit: str) -> vol.Schema:
    """Return the options schema with the given defaults."""
    return vol.Schema(
        {
            vol.Required(CONF_POLL_INTERVAL, default=poll_interval): vol.All(
                vol.Coerce(int),
                vol.Range(min=MIN_POLL_INTERVAL, max=MAX_POLL_INTERVAL),
            ),
            vol.Required(CONF_TEMPERATURE_UNIT, default=temperature_unit): vol.In(
                [UnitOfTemperature.CELSIUS, UnitOfTemperature.FAHRENHEIT]
            ),
        }
    )


class FenixTftConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for Fenix TFT Wifi integration."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Return the options flow handler."""
        return FenixTftOptionsFlow()

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing the token pair.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            access_token = user_input[CONF_ACCESS_TOKEN].strip()
            refresh_token = user_input[CONF_REFRESH_TOKEN].strip()

            try:
                claims = api.decode_token_claims(access_token)
                session = get_async_client(self.hass)
                devices = await api.async_get_installations(
                    session, access_token, claims.subject_id
                )
                _LOGGER.info("Found %d thermostats with Fenix API", len(devices))

            except api.CredentialDecodeError as err:
                _LOGGER.warning(
                    "Invalid access token (%s): %s", ERROR_INVALID_TOKEN, err
                )
                errors["base"] = ERROR_INVALID_TOKEN
            except api.FenixApiAuthError as err:
                _LOGGER.warning(
                    "Authentication failed (%s): %s", ERROR_INVALID_AUTH, err
                )
                errors["base"] = ERROR_INVALID_AUTH
            except api.InventoryFetchError:
                _LOGGER.exception("Connection error (%s)", ERROR_CANNOT_CONNECT)
                errors["base"] = ERROR_CANNOT_CONNECT
            except Exception:
                _LOGGER.exception(
                    "Unexpected error during validation (%s)",
                    ERROR_UNKNOWN,
                )
                errors["base"] = ERROR_UNKNOWN

            else:
                await self.async_set_unique_id(claims.subject_id)
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title="Fenix TFT Wifi",
                    data={
                        CONF_ACCESS_TOKEN: access_token,
                        CONF_REFRESH_TOKEN: refresh_token,
                    },
                    options={
                        CONF_POLL_INTERVAL: DEFAULT_POLL_INTERVAL,
                        CONF_TEMPERATURE_UNIT: DEFAULT_TEMPERATURE_UNIT,
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_ACCESS_TOKEN): str,
                    vol.Required(CONF_REFRESH_TOKEN): str,
                }
            ),
            errors=errors,
        )


class FenixTftOptionsFlow(OptionsFlow):
    """Handle poll interval and display unit options."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Manage the options."""
        if user_input is not None:
            return self.async_create_entry(data=user_input)

        options = self.config_entry.options
        return self.async_show_form(
            step_id="init",
            data_schema=options_schema(
                options.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL),
                options.get(CONF_TEMPERATURE_UNIT, DEFAULT_TEMPERATURE_UNIT),
            ),
        )
