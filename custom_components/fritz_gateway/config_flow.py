"""
Configuration flow for FRITZ!Box Gateway integration.

This module handles the setup and configuration of the FRITZ!Box Gateway
integration through Home Assistant's config flow system, and the options
flow tuning polling, concurrency and per-device overrides.
"""

import logging
from typing import Any
from urllib.parse import urlparse

import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_PASSWORD, CONF_USERNAME, CONF_VERIFY_SSL
from homeassistant.core import callback
from homeassistant.helpers.httpx_client import get_async_client
from homeassistant.helpers.selector import ObjectSelector

from . import api
from .const import (
    CONF_CONCURRENT,
    CONF_DEVICES,
    CONF_INTERVAL,
    CONF_MAX_CONCURRENT,
    CONF_MIN_REFRESH_AGE,
    CONF_URL,
    DEFAULT_CONCURRENCY_WIDTH,
    DEFAULT_MIN_REFRESH_AGE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_URL,
    DOMAIN,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_INVALID_URL,
    ERROR_UNKNOWN,
)

_LOGGER = logging.getLogger(__name__)


class InvalidUrlError(ValueError):
    """Raised when the configured URL is not an http(s) URL."""


def _validate_url(url: str) -> str:
    url = url.strip().rstrip("/")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        error_msg = f"Not an http(s) URL: {url}"
        raise InvalidUrlError(error_msg)
    return url


class FritzGatewayConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for FRITZ!Box Gateway integration."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:  # noqa: ARG004
        """Return the options flow handler."""
        return FritzGatewayOptionsFlow()

    @staticmethod
    async def _async_logout(client: api.FritzBoxApi, sid: str) -> None:
        try:
            await client.async_logout(sid)
        except api.FritzApiClientError as err:
            _LOGGER.debug("Logout after validation failed: %s", err)

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing URL, username and password.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            username = user_input.get(CONF_USERNAME, "")
            password = user_input[CONF_PASSWORD]
            verify_ssl = user_input.get(CONF_VERIFY_SSL, False)

            try:
                url = _validate_url(user_input[CONF_URL])
                session = get_async_client(self.hass, verify_ssl=verify_ssl)
                client = api.FritzBoxApi(session, url, username, password)
                sid = await client.async_authenticate()
                await self._async_logout(client, sid)
                _LOGGER.info("Successfully authenticated with FRITZ!Box at %s", url)

            except InvalidUrlError as err:
                _LOGGER.warning("Invalid URL (%s): %s", ERROR_INVALID_URL, err)
                errors["base"] = ERROR_INVALID_URL
            except api.FritzAuthenticationError as err:
                _LOGGER.warning(
                    "Authentication failed (%s): %s", ERROR_INVALID_AUTH, err
                )
                errors["base"] = ERROR_INVALID_AUTH
            except api.FritzApiClientError as err:
                _LOGGER.warning("Connection error (%s): %s", ERROR_CANNOT_CONNECT, err)
                errors["base"] = ERROR_CANNOT_CONNECT
            except Exception:
                _LOGGER.exception(
                    "Unexpected error during authentication (%s)",
                    ERROR_UNKNOWN,
                )
                errors["base"] = ERROR_UNKNOWN

            else:
                await self.async_set_unique_id(url.lower())
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title=f"FRITZ!Box ({urlparse(url).netloc})",
                    data={
                        CONF_URL: url,
                        CONF_USERNAME: username,
                        CONF_PASSWORD: password,
                        CONF_VERIFY_SSL: verify_ssl,
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_URL, default=DEFAULT_URL): str,
                    vol.Optional(CONF_USERNAME, default=""): str,
                    vol.Required(CONF_PASSWORD): str,
                    vol.Optional(CONF_VERIFY_SSL, default=False): bool,
                }
            ),
            errors=errors,
        )


class FritzGatewayOptionsFlow(OptionsFlow):
    """Handle polling, concurrency and device override options."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show and store the integration options."""
        if user_input is not None:
            return self.async_create_entry(data=user_input)

        options = self.config_entry.options
        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Optional(
                        CONF_INTERVAL,
                        default=options.get(CONF_INTERVAL, DEFAULT_POLL_INTERVAL),
                    ): vol.All(vol.Coerce(int), vol.Range(min=5)),
                    vol.Optional(
                        CONF_CONCURRENT,
                        default=options.get(CONF_CONCURRENT, False),
                    ): bool,
                    vol.Optional(
                        CONF_MAX_CONCURRENT,
                        default=options.get(
                            CONF_MAX_CONCURRENT, DEFAULT_CONCURRENCY_WIDTH
                        ),
                    ): vol.All(vol.Coerce(int), vol.Range(min=1, max=10)),
                    vol.Optional(
                        CONF_MIN_REFRESH_AGE,
                        default=options.get(
                            CONF_MIN_REFRESH_AGE, DEFAULT_MIN_REFRESH_AGE
                        ),
                    ): vol.All(vol.Coerce(float), vol.Range(min=0)),
                    vol.Optional(
                        CONF_DEVICES,
                        default=options.get(CONF_DEVICES, {}),
                    ): ObjectSelector(),
                }
            ),
        )
