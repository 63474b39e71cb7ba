"""Tests for the FRITZ!Box session manager."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.fritz_gateway.api import (
    FritzAuthenticationError,
    FritzTransportError,
)
from custom_components.fritz_gateway.session import SessionManager

CONCURRENT_CALLERS = 10


class TestAsyncGetToken:
    """Tests for SessionManager.async_get_token."""

    @pytest.mark.asyncio
    async def test_async_get_token_logs_in_once(self, mock_api: Mock) -> None:
        """Test that the token is reused after the first login."""
        manager = SessionManager(mock_api)
        assert await manager.async_get_token() == "sid1"
        assert await manager.async_get_token() == "sid1"
        mock_api.async_authenticate.assert_awaited_once()
        assert manager.session is not None
        assert manager.session.token == "sid1"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_login(self, mock_api: Mock) -> None:
        """Test that concurrent callers all receive the same token."""
        manager = SessionManager(mock_api)
        tokens = await asyncio.gather(
            *(manager.async_get_token() for _ in range(CONCURRENT_CALLERS))
        )
        assert set(tokens) == {"sid1"}
        mock_api.async_authenticate.assert_awaited_once()


class TestAsyncRenew:
    """Tests for SessionManager.async_renew."""

    @pytest.mark.asyncio
    async def test_concurrent_renewals_collapse_into_one_login(
        self, mock_api: Mock
    ) -> None:
        """Test that renewals requested during a login await that login."""
        manager = SessionManager(mock_api)
        stale = await manager.async_get_token()

        release = asyncio.Event()

        async def _slow_authenticate() -> str:
            await release.wait()
            return "sid2"

        mock_api.async_authenticate = AsyncMock(side_effect=_slow_authenticate)
        renewals = [
            asyncio.create_task(manager.async_renew(stale))
            for _ in range(CONCURRENT_CALLERS)
        ]
        getter = asyncio.create_task(manager.async_get_token())
        await asyncio.sleep(0)

        # No token is handed out while the renewal is in flight
        assert manager.session is None
        assert not getter.done()

        release.set()
        tokens = await asyncio.gather(*renewals, getter)
        assert set(tokens) == {"sid2"}
        mock_api.async_authenticate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_async_renew_skips_login_when_already_replaced(
        self, mock_api: Mock
    ) -> None:
        """Test that a late renewal for an old token reuses the new session."""
        manager = SessionManager(mock_api)
        old = await manager.async_get_token()
        new = await manager.async_renew(old)
        assert new == "sid2"

        assert await manager.async_renew(old) == "sid2"
        assert mock_api.async_authenticate.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_renewal_is_reported_to_every_caller(
        self, mock_api: Mock
    ) -> None:
        """Test that all waiters see the failure and the next call retries."""
        mock_api.async_authenticate = AsyncMock(
            side_effect=[FritzAuthenticationError("Invalid session id"), "sid2"]
        )
        manager = SessionManager(mock_api)

        results = await asyncio.gather(
            manager.async_get_token(),
            manager.async_get_token(),
            return_exceptions=True,
        )
        assert all(isinstance(result, FritzAuthenticationError) for result in results)
        assert manager.session is None

        assert await manager.async_get_token() == "sid2"

    @pytest.mark.asyncio
    async def test_transport_failure_is_reported_as_authentication_error(
        self, mock_api: Mock
    ) -> None:
        """Test that an unreachable backend fails the renewal."""
        mock_api.async_authenticate = AsyncMock(
            side_effect=FritzTransportError("Unable to connect")
        )
        manager = SessionManager(mock_api)
        with pytest.raises(FritzAuthenticationError, match="Unable to connect"):
            await manager.async_get_token()


class TestInvalidate:
    """Tests for SessionManager.invalidate."""

    @pytest.mark.asyncio
    async def test_invalidate_drops_current_session(self, mock_api: Mock) -> None:
        """Test that invalidating the current token forces a new login."""
        manager = SessionManager(mock_api)
        token = await manager.async_get_token()
        manager.invalidate(token)
        assert manager.session is None
        assert await manager.async_get_token() == "sid2"

    @pytest.mark.asyncio
    async def test_invalidate_ignores_stale_token(self, mock_api: Mock) -> None:
        """Test that an old expiry cannot invalidate a fresh session."""
        manager = SessionManager(mock_api)
        old = await manager.async_get_token()
        await manager.async_renew(old)

        manager.invalidate(old)
        assert manager.session is not None
        assert manager.session.token == "sid2"


class TestAsyncClose:
    """Tests for SessionManager.async_close."""

    @pytest.mark.asyncio
    async def test_async_close_logs_out(self, mock_api: Mock) -> None:
        """Test that closing logs out the current session."""
        manager = SessionManager(mock_api)
        await manager.async_get_token()
        await manager.async_close()
        mock_api.async_logout.assert_awaited_once_with("sid1")
        assert manager.session is None

    @pytest.mark.asyncio
    async def test_async_close_ignores_logout_errors(self, mock_api: Mock) -> None:
        """Test that a failing logout does not raise."""
        mock_api.async_logout = AsyncMock(side_effect=FritzTransportError("gone"))
        manager = SessionManager(mock_api)
        await manager.async_get_token()
        await manager.async_close()
        assert manager.session is None

    @pytest.mark.asyncio
    async def test_async_close_without_session_does_nothing(
        self, mock_api: Mock
    ) -> None:
        """Test that closing an unused manager does not call the backend."""
        await SessionManager(mock_api).async_close()
        mock_api.async_logout.assert_not_awaited()
