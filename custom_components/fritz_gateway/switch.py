"""Switch entities for FRITZ!DECT outlets and the guest Wi-Fi."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchDeviceClass, SwitchEntity

from .const import DOMAIN
from .controller import AccessoryKind, GuestWifiModule, SwitchModule
from .entity import FritzGatewayEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .controller import AccessoryController

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up outlet and guest Wi-Fi switches."""
    controllers = hass.data[DOMAIN][entry.entry_id]["controllers"]

    entities: list[SwitchEntity] = []
    for controller in controllers:
        if controller.kind == AccessoryKind.OUTLET:
            entities.append(FritzOutletSwitch(controller))
        elif controller.kind == AccessoryKind.WIFI:
            entities.append(FritzGuestWifiSwitch(controller))
    async_add_entities(entities)


class FritzOutletSwitch(FritzGatewayEntity, SwitchEntity):
    """On/off switch of a FRITZ!DECT outlet."""

    _attr_device_class = SwitchDeviceClass.OUTLET
    _attr_name = None

    def __init__(self, controller: AccessoryController) -> None:
        super().__init__(controller)
        self._module = controller.module(SwitchModule)

    @property
    def is_on(self) -> bool:
        return self._module.is_on

    async def async_turn_on(self, **kwargs: Any) -> None:  # noqa: ANN401, ARG002
        self._module.set_on(True)  # noqa: FBT003
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs: Any) -> None:  # noqa: ANN401, ARG002
        self._module.set_on(False)  # noqa: FBT003
        self.async_write_ha_state()


class FritzGuestWifiSwitch(FritzGatewayEntity, SwitchEntity):
    """Guest Wi-Fi of the FRITZ!Box."""

    _attr_device_class = SwitchDeviceClass.SWITCH
    _attr_icon = "mdi:wifi"

    def __init__(self, controller: AccessoryController) -> None:
        super().__init__(controller)
        self._module = controller.module(GuestWifiModule)
        self._attr_name = controller.name

    @property
    def is_on(self) -> bool:
        return self._module.is_on

    async def async_turn_on(self, **kwargs: Any) -> None:  # noqa: ANN401, ARG002
        _LOGGER.info("Enabling guest Wi-Fi")
        self._module.set_on(True)  # noqa: FBT003
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs: Any) -> None:  # noqa: ANN401, ARG002
        _LOGGER.info("Disabling guest Wi-Fi")
        self._module.set_on(False)  # noqa: FBT003
        self.async_write_ha_state()
