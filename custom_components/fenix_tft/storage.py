"""Durable storage of the Fenix access/refresh token pair."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.storage import Store

from .const import DOMAIN, STORAGE_VERSION

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)

KEY_ACCESS_TOKEN = "accessToken"
KEY_REFRESH_TOKEN = "refreshToken"


class FenixCredentialStore:
    """Persist the latest token pair of a config entry as JSON."""

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        """Initialize the store for the given config entry."""
        self._store: Store[dict[str, Any]] = Store(
            hass, STORAGE_VERSION, f"{DOMAIN}.{entry_id}.credentials"
        )

    async def async_load(self) -> tuple[str, str] | None:
        """Load the persisted (access_token, refresh_token) pair, if any."""
        data = await self._store.async_load()
        if not data:
            return None

        access_token = data.get(KEY_ACCESS_TOKEN)
        refresh_token = data.get(KEY_REFRESH_TOKEN)
        if not access_token or not refresh_token:
            _LOGGER.warning("Ignoring incomplete persisted credentials")
            return None
        return access_token, refresh_token

    async def async_save(self, access_token: str, refresh_token: str) -> None:
        """Replace the persisted token pair."""
        await self._store.async_save(
            {KEY_ACCESS_TOKEN: access_token, KEY_REFRESH_TOKEN: refresh_token}
        )

    async def async_remove(self) -> None:
        """Delete the persisted token pair."""
        await self._store.async_remove()
