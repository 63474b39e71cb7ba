"""Session management for the FRITZ!Box Gateway integration."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .api import FritzApiClientError, FritzAuthenticationError
from .models import Session

if TYPE_CHECKING:
    from .api import FritzBoxApi

_LOGGER = logging.getLogger(__name__)


class SessionManager:
    """Owns the FRITZ!Box session id and renews it on demand.

    At most one authentication runs at a time. Callers that need a token
    while a renewal is in flight await that renewal instead of starting a
    second login.
    """

    def __init__(self, api: FritzBoxApi) -> None:
        """Initialize the session manager.

        Args:
            api: Remote procedure surface used to authenticate.

        """
        self._api = api
        self._session: Session | None = None
        self._renewal: asyncio.Task[str] | None = None

    @property
    def session(self) -> Session | None:
        """Return the current session, if one is considered valid."""
        return self._session

    async def async_get_token(self) -> str:
        """Return a valid session id, authenticating if necessary."""
        if self._session is not None and self._renewal is None:
            return self._session.token
        return await self.async_renew()

    def invalidate(self, token: str | None = None) -> None:
        """Mark the session as stale.

        Args:
            token: The token a caller saw being rejected. When given, the
                session is only dropped if it still carries that token.

        """
        if self._session is None:
            return
        if token is not None and self._session.token != token:
            _LOGGER.debug("Ignoring invalidation of an already replaced session")
            return
        _LOGGER.debug("Invalidating FRITZ!Box session")
        self._session = None

    async def async_renew(self, stale_token: str | None = None) -> str:
        """Authenticate exclusively and return the new token.

        Args:
            stale_token: The token the caller considers stale. If the session
                has been replaced since, the current token is returned without
                logging in again.

        Raises:
            FritzAuthenticationError: If the login fails for any reason.

        """
        if (
            self._renewal is None
            and self._session is not None
            and self._session.token != stale_token
        ):
            return self._session.token

        if self._renewal is None:
            self._session = None
            self._renewal = asyncio.create_task(self._async_authenticate())
            self._renewal.add_done_callback(self._renewal_done)

        return await asyncio.shield(self._renewal)

    def _renewal_done(self, task: asyncio.Task[str]) -> None:
        if self._renewal is task:
            self._renewal = None
        # Mark the exception as retrieved when nobody is awaiting anymore
        if not task.cancelled():
            task.exception()

    async def _async_authenticate(self) -> str:
        try:
            token = await self._api.async_authenticate()
        except FritzAuthenticationError:
            _LOGGER.warning("FRITZ!Box session renewal failed - check credentials")
            raise
        except FritzApiClientError as err:
            _LOGGER.warning("FRITZ!Box session renewal failed: %s", err)
            error_msg = f"Session renewal failed: {err}"
            raise FritzAuthenticationError(error_msg) from err

        self._session = Session(token=token, valid_since=datetime.now(UTC))
        _LOGGER.info("FRITZ!Box session renewed")
        return token

    async def async_close(self) -> None:
        """Log out and forget the current session."""
        session, self._session = self._session, None
        if session is None:
            return
        try:
            await self._api.async_logout(session.token)
        except FritzApiClientError as err:
            _LOGGER.debug("Logout failed: %s", err)
        else:
            _LOGGER.debug("Logged out of FRITZ!Box session")
