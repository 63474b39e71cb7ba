"""Pytest configuration and fixtures for FRITZ!Box Gateway tests."""

from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.fritz_gateway.api import parse_device_list
from custom_components.fritz_gateway.cache import DeviceStateCache
from custom_components.fritz_gateway.config import GatewayConfig
from custom_components.fritz_gateway.const import DOMAIN
from custom_components.fritz_gateway.controller import AccessoryController
from custom_components.fritz_gateway.discovery import DiscoveryService
from custom_components.fritz_gateway.models import Device
from helpers import DEVICE_LIST_XML, FakeQueue


@pytest.fixture
def device_list_xml() -> str:
    """Fixture providing a ``getdevicelistinfos`` answer."""
    return DEVICE_LIST_XML


@pytest.fixture
def devices() -> list[Device]:
    """Fixture providing the parsed sample device list."""
    return parse_device_list(DEVICE_LIST_XML)


@pytest.fixture
def fake_queue() -> FakeQueue:
    """Fixture providing an empty fake request queue."""
    return FakeQueue()


@pytest.fixture
def mock_api() -> Mock:
    """Fixture providing a FRITZ!Box API double with numbered session ids."""
    api = Mock()
    counter = {"logins": 0}

    async def _authenticate() -> str:
        counter["logins"] += 1
        return f"sid{counter['logins']}"

    api.async_authenticate = AsyncMock(side_effect=_authenticate)
    api.async_logout = AsyncMock()
    api.async_call = AsyncMock(return_value=None)
    return api


@pytest.fixture
def controllers(fake_queue: FakeQueue, devices: list[Device]) -> list[AccessoryController]:
    """Fixture providing the controllers created for the sample devices."""
    wifi = Device(
        identifier="wifi",
        capabilities=frozenset(),
        display_name="Guest WLAN",
        manufacturer="AVM",
    )
    service = DiscoveryService(
        fake_queue, DeviceStateCache(fake_queue), GatewayConfig()
    )
    return service.create_controllers([*devices, wifi])


@pytest.fixture
def mock_hass(controllers: list[AccessoryController]) -> Mock:
    """Create a mock Home Assistant instance holding the sample controllers."""
    hass = Mock()
    hass.data = {DOMAIN: {"test_entry": {"controllers": controllers}}}
    return hass


@pytest.fixture
def mock_entry() -> Mock:
    """Create a mock config entry."""
    entry = Mock()
    entry.entry_id = "test_entry"
    return entry
