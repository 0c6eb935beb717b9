"""Tests for the Fenix credential store."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from custom_components.fenix_tft.storage import FenixCredentialStore


@pytest.fixture
def mock_store() -> Mock:
    """Create a mock Home Assistant Store."""
    store = Mock()
    store.async_load = AsyncMock(return_value=None)
    store.async_save = AsyncMock()
    store.async_remove = AsyncMock()
    return store


@pytest.fixture
def credential_store(mock_store: Mock) -> FenixCredentialStore:
    """Create a credential store backed by the mock Store."""
    with patch(
        "custom_components.fenix_tft.storage.Store", return_value=mock_store
    ) as mock_store_cls:
        store = FenixCredentialStore(Mock(), "entry-1")
    assert mock_store_cls.call_args.args[2] == "fenix_tft.entry-1.credentials"
    return store


class TestFenixCredentialStore:
    """Tests for FenixCredentialStore."""

    @pytest.mark.asyncio
    async def test_async_load_returns_none_without_data(
        self, credential_store: FenixCredentialStore
    ) -> None:
        """Test that nothing stored loads as None."""
        assert await credential_store.async_load() is None

    @pytest.mark.asyncio
    async def test_async_load_returns_token_pair(
        self, credential_store: FenixCredentialStore, mock_store: Mock
    ) -> None:
        """Test that a stored pair is returned as tuple."""
        mock_store.async_load.return_value = {
            "accessToken": "access",
            "refreshToken": "refresh",
        }
        assert await credential_store.async_load() == ("access", "refresh")

    @pytest.mark.asyncio
    async def test_async_load_ignores_incomplete_data(
        self, credential_store: FenixCredentialStore, mock_store: Mock
    ) -> None:
        """Test that a pair missing a token is ignored."""
        mock_store.async_load.return_value = {"accessToken": "access"}
        assert await credential_store.async_load() is None

    @pytest.mark.asyncio
    async def test_async_save_writes_both_tokens(
        self, credential_store: FenixCredentialStore, mock_store: Mock
    ) -> None:
        """Test that both tokens are written under their storage keys."""
        await credential_store.async_save("access", "refresh")
        mock_store.async_save.assert_awaited_once_with(
            {"accessToken": "access", "refreshToken": "refresh"}
        )

    @pytest.mark.asyncio
    async def test_async_remove_deletes_store(
        self, credential_store: FenixCredentialStore, mock_store: Mock
    ) -> None:
        """Test that removing deletes the stored file."""
        await credential_store.async_remove()
        mock_store.async_remove.assert_awaited_once()
