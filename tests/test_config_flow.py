"""Tests for the Fenix TFT config and options flows."""

from unittest.mock import AsyncMock, Mock, PropertyMock, patch

import pytest
import voluptuous as vol
from homeassistant.const import UnitOfTemperature
from homeassistant.data_entry_flow import FlowResultType

from custom_components.fenix_tft import api
from custom_components.fenix_tft.config_flow import (
    FenixTftConfigFlow,
    FenixTftOptionsFlow,
    options_schema,
)
from custom_components.fenix_tft.const import (
    CONF_ACCESS_TOKEN,
    CONF_POLL_INTERVAL,
    CONF_REFRESH_TOKEN,
    CONF_TEMPERATURE_UNIT,
    DEFAULT_POLL_INTERVAL,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_INVALID_TOKEN,
    ERROR_UNKNOWN,
)
from custom_components.fenix_tft.models import DeviceDescriptor

from .conftest import TEST_SUBJECT_ID

INSTALLATIONS_PATH = (
    "custom_components.fenix_tft.config_flow.api.async_get_installations"
)


@pytest.fixture
def mock_hass() -> Mock:
    """Create a mock Home Assistant instance."""
    return Mock()


@pytest.fixture
def flow(mock_hass: Mock) -> FenixTftConfigFlow:
    """Create a FenixTftConfigFlow instance for testing."""
    flow_instance = FenixTftConfigFlow()
    flow_instance.hass = mock_hass
    flow_instance.async_set_unique_id = AsyncMock()
    flow_instance._abort_if_unique_id_configured = Mock()
    flow_instance.async_create_entry = Mock(
        return_value={"type": FlowResultType.CREATE_ENTRY},
    )
    flow_instance.async_show_form = Mock(return_value={"type": FlowResultType.FORM})
    return flow_instance


@pytest.fixture
def user_input(sample_access_token: str, sample_refresh_token: str) -> dict[str, str]:
    """Create user input with surrounding whitespace."""
    return {
        CONF_ACCESS_TOKEN: f" {sample_access_token} ",
        CONF_REFRESH_TOKEN: f"{sample_refresh_token}\n",
    }


class TestFenixTftConfigFlowAsyncStepUser:
    """Tests for async_step_user method."""

    @pytest.mark.asyncio
    async def test_async_step_user_shows_form_when_no_input(
        self, flow: FenixTftConfigFlow
    ) -> None:
        """Test that async_step_user shows form when no input provided."""
        result = await flow.async_step_user()
        flow.async_show_form.assert_called_once()
        assert flow.async_show_form.call_args[1]["errors"] == {}
        assert result["type"] == FlowResultType.FORM

    @pytest.mark.asyncio
    async def test_async_step_user_creates_entry_on_valid_tokens(
        self,
        flow: FenixTftConfigFlow,
        user_input: dict[str, str],
        sample_access_token: str,
        sample_refresh_token: str,
    ) -> None:
        """Test that a valid token pair creates an entry for its user."""
        mock_session = Mock()
        with (
            patch(
                "custom_components.fenix_tft.config_flow.get_async_client",
                return_value=mock_session,
            ),
            patch(
                INSTALLATIONS_PATH,
                new_callable=AsyncMock,
                return_value=[DeviceDescriptor("sensor-1", "Living")],
            ) as mock_installations,
        ):
            result = await flow.async_step_user(user_input)

        mock_installations.assert_awaited_once_with(
            mock_session, sample_access_token, TEST_SUBJECT_ID
        )
        flow.async_set_unique_id.assert_called_once_with(TEST_SUBJECT_ID)
        flow._abort_if_unique_id_configured.assert_called_once()
        call_args = flow.async_create_entry.call_args
        assert call_args[1]["title"] == "Fenix TFT Wifi"
        assert call_args[1]["data"] == {
            CONF_ACCESS_TOKEN: sample_access_token,
            CONF_REFRESH_TOKEN: sample_refresh_token,
        }
        assert call_args[1]["options"] == {
            CONF_POLL_INTERVAL: DEFAULT_POLL_INTERVAL,
            CONF_TEMPERATURE_UNIT: UnitOfTemperature.CELSIUS,
        }
        assert result["type"] == FlowResultType.CREATE_ENTRY

    @pytest.mark.asyncio
    async def test_async_step_user_shows_error_on_invalid_token(
        self, flow: FenixTftConfigFlow
    ) -> None:
        """Test that an undecodable access token is reported."""
        with patch(INSTALLATIONS_PATH, new_callable=AsyncMock) as mock_installations:
            await flow.async_step_user(
                {CONF_ACCESS_TOKEN: "not-a-jwt", CONF_REFRESH_TOKEN: "refresh"}
            )

        mock_installations.assert_not_awaited()
        errors = flow.async_show_form.call_args[1]["errors"]
        assert errors["base"] == ERROR_INVALID_TOKEN

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (api.FenixApiAuthError("Authentication error"), ERROR_INVALID_AUTH),
            (api.InventoryFetchError("Connection error"), ERROR_CANNOT_CONNECT),
            (RuntimeError("boom"), ERROR_UNKNOWN),
        ],
    )
    async def test_async_step_user_shows_error_on_api_failure(
        self,
        flow: FenixTftConfigFlow,
        user_input: dict[str, str],
        error: Exception,
        expected: str,
    ) -> None:
        """Test that listing failures are mapped to form errors."""
        with (
            patch("custom_components.fenix_tft.config_flow.get_async_client"),
            patch(INSTALLATIONS_PATH, new_callable=AsyncMock, side_effect=error),
        ):
            await flow.async_step_user(user_input)

        flow.async_create_entry.assert_not_called()
        errors = flow.async_show_form.call_args[1]["errors"]
        assert errors["base"] == expected


class TestOptionsSchema:
    """Tests for options_schema function."""

    def test_options_schema_applies_defaults(self) -> None:
        """Test that missing options are filled with the given defaults."""
        schema = options_schema(30, UnitOfTemperature.CELSIUS)
        assert schema({}) == {
            CONF_POLL_INTERVAL: 30,
            CONF_TEMPERATURE_UNIT: UnitOfTemperature.CELSIUS,
        }

    @pytest.mark.parametrize("poll_interval", [0, 1441])
    def test_options_schema_rejects_out_of_range_interval(
        self, poll_interval: int
    ) -> None:
        """Test that the poll interval is bounded."""
        schema = options_schema(30, UnitOfTemperature.CELSIUS)
        with pytest.raises(vol.Invalid):
            schema({CONF_POLL_INTERVAL: poll_interval})

    def test_options_schema_rejects_unknown_unit(self) -> None:
        """Test that only Celsius and Fahrenheit are accepted."""
        schema = options_schema(30, UnitOfTemperature.CELSIUS)
        with pytest.raises(vol.Invalid):
            schema({CONF_TEMPERATURE_UNIT: "K"})


class TestFenixTftOptionsFlow:
    """Tests for FenixTftOptionsFlow."""

    @pytest.mark.asyncio
    async def test_async_step_init_shows_current_options(self) -> None:
        """Test that the form is prefilled with the current options."""
        options_flow = FenixTftOptionsFlow()
        options_flow.async_show_form = Mock(return_value={"type": FlowResultType.FORM})
        entry = Mock()
        entry.options = {
            CONF_POLL_INTERVAL: 10,
            CONF_TEMPERATURE_UNIT: UnitOfTemperature.FAHRENHEIT,
        }

        with patch.object(
            FenixTftOptionsFlow, "config_entry", new_callable=PropertyMock
        ) as mock_config_entry:
            mock_config_entry.return_value = entry
            await options_flow.async_step_init()

        schema = options_flow.async_show_form.call_args[1]["data_schema"]
        assert schema({}) == {
            CONF_POLL_INTERVAL: 10,
            CONF_TEMPERATURE_UNIT: UnitOfTemperature.FAHRENHEIT,
        }

    @pytest.mark.asyncio
    async def test_async_step_init_saves_input(self) -> None:
        """Test that submitted options are stored."""
        options_flow = FenixTftOptionsFlow()
        options_flow.async_create_entry = Mock(
            return_value={"type": FlowResultType.CREATE_ENTRY}
        )
        user_input = {
            CONF_POLL_INTERVAL: 5,
            CONF_TEMPERATURE_UNIT: UnitOfTemperature.CELSIUS,
        }

        result = await options_flow.async_step_init(user_input)

        options_flow.async_create_entry.assert_called_once_with(data=user_input)
        assert result["type"] == FlowResultType.CREATE_ENTRY
