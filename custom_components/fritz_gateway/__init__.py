from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant

from .api import (
    FritzApiClientError,
    FritzBoxApi,
    FritzTransportError,
    create_session_client,
)
from .cache import DeviceStateCache
from .config import GatewayConfig
from .const import DOMAIN
from .discovery import DiscoveryService
from .request_queue import RequestQueue
from .session import SessionManager

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [
    Platform.BINARY_SENSOR,
    Platform.CLIMATE,
    Platform.EVENT,
    Platform.SENSOR,
    Platform.SWITCH,
]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up FRITZ!Box Gateway for entry %s", entry.entry_id)

    config = GatewayConfig.from_entry(entry)
    session = create_session_client(hass, verify_ssl=config.verify_ssl)
    api = FritzBoxApi(session, config.url, config.username, config.password)
    session_manager = SessionManager(api)
    queue = RequestQueue(api, session_manager, max_concurrent=config.concurrency_width)
    cache = DeviceStateCache(queue, min_refresh_age=config.min_refresh_age)

    try:
        await session_manager.async_get_token()
        _LOGGER.info("FRITZ!Box login successful")
    except FritzApiClientError as err:
        if isinstance(err.__cause__, FritzTransportError):
            _LOGGER.error("Could not reach FRITZ!Box at %s: %s", config.url, err)
        else:
            _LOGGER.error(
                "Initializing FRITZ!Box accessories failed, wrong user credentials? %s",
                err,
            )
        await queue.async_stop()
        return False

    discovery = DiscoveryService(queue, cache, config)
    devices = await discovery.async_discover()
    controllers = discovery.create_controllers(devices)
    _LOGGER.info(
        "Discovered %d device(s), created %d accessories",
        len(devices),
        len(controllers),
    )

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "config": config,
        "session_manager": session_manager,
        "queue": queue,
        "cache": cache,
        "controllers": controllers,
    }

    for controller in controllers:
        controller.start(hass)

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))
    return True


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading FRITZ!Box Gateway for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)
        return False

    entry_data = hass.data[DOMAIN].pop(entry.entry_id)
    for controller in entry_data["controllers"]:
        controller.stop()
    await entry_data["cache"].async_shutdown()
    await entry_data["queue"].async_stop()
    await entry_data["session_manager"].async_close()
    _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
    return True
