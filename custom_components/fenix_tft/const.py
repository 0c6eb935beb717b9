"""Constants for Fenix TFT Wifi integration.

This module contains all the constants used throughout the integration,
including API endpoints, configuration keys, and mapping dictionaries.
"""

import uuid
from datetime import timedelta

from homeassistant.components.climate import HVACMode
from homeassistant.const import UnitOfTemperature

from .models import ThermostatMode

DOMAIN = "fenix_tft"

API_URL = "https://vs2-fe-apim-prod.azure-api.net"
IDENTITY_URL = "https://vs2-fe-identity-prod.azurewebsites.net"

MANUFACTURER = "Fenix Trading s.r.o."
MODEL = "Fenix TFT Wifi"

# Namespace for device uuids derived from the remote sensor id
FENIX_NAMESPACE = uuid.UUID("6f1c2a3e-0d4b-5e8f-9a7c-2b1d3e4f5a6b")

STORAGE_VERSION = 1

TOKEN_REFRESH_INTERVAL = timedelta(minutes=15)
TOKEN_EXPIRY_SKEW = 3600  # Seconds before expiry at which a refresh is due

DEFAULT_POLL_INTERVAL = 30  # Minutes
MIN_POLL_INTERVAL = 1
MAX_POLL_INTERVAL = 1440

MIN_HEATING_SETPOINT_C = 7.0

CONF_ACCESS_TOKEN = "access_token"
CONF_REFRESH_TOKEN = "refresh_token"
CONF_POLL_INTERVAL = "poll_interval"
CONF_TEMPERATURE_UNIT = "temperature_unit"

DEFAULT_TEMPERATURE_UNIT = UnitOfTemperature.CELSIUS

ERROR_INVALID_TOKEN = "invalid_token"
ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_UNKNOWN = "unknown_error"

# Fenix twin property type codes
WATTS_TYPE_MODE = "Dm"
WATTS_TYPE_SETPOINT = "Ma"

TEMPERATURE_LIMITS = {
    UnitOfTemperature.CELSIUS: (5.0, 35.0, 0.5),
    UnitOfTemperature.FAHRENHEIT: (41.0, 95.0, 1.0),
}

HVAC_MODE_MAP = {
    HVACMode.OFF: ThermostatMode.OFF,
    HVACMode.HEAT: ThermostatMode.MANUAL,
    HVACMode.COOL: ThermostatMode.ANTIFREEZE,
    HVACMode.AUTO: ThermostatMode.AUTO,
}
