"""Binary sensor entities for the FRITZ!Box Gateway integration.

Creates binary_sensor entities for:
  - Alarm contacts (window/door sensors, honouring per-device invert)
  - Low battery of battery powered devices
  - Outlets drawing power
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.const import EntityCategory

from .const import DOMAIN
from .controller import AlarmModule, BatteryModule, PowerMeterModule
from .entity import FritzGatewayEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .controller import AccessoryController


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up binary sensors from a config entry."""
    controllers = hass.data[DOMAIN][entry.entry_id]["controllers"]

    entities: list[BinarySensorEntity] = []
    for controller in controllers:
        if controller.module(AlarmModule) is not None:
            entities.append(FritzContactSensor(controller))
        if controller.module(BatteryModule) is not None:
            entities.append(FritzLowBatterySensor(controller))
        if controller.module(PowerMeterModule) is not None:
            entities.append(FritzInUseSensor(controller))
    async_add_entities(entities)


class FritzContactSensor(FritzGatewayEntity, BinarySensorEntity):
    """Open/closed state of an alarm sensor."""

    _attr_device_class = BinarySensorDeviceClass.OPENING
    _attr_name = None

    def __init__(self, controller: AccessoryController) -> None:
        super().__init__(controller)
        self._module = controller.module(AlarmModule)

    @property
    def is_on(self) -> bool:
        return self._module.is_open


class FritzLowBatterySensor(FritzGatewayEntity, BinarySensorEntity):
    """Binary sensor turning on when the battery charge drops below 20%."""

    _attr_device_class = BinarySensorDeviceClass.BATTERY
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_name = "Low battery"

    def __init__(self, controller: AccessoryController) -> None:
        super().__init__(controller, "low_battery")
        self._module = controller.module(BatteryModule)

    @property
    def is_on(self) -> bool:
        return self._module.low_battery


class FritzInUseSensor(FritzGatewayEntity, BinarySensorEntity):
    """Binary sensor showing whether an outlet draws power."""

    _attr_device_class = BinarySensorDeviceClass.POWER
    _attr_name = "In use"

    def __init__(self, controller: AccessoryController) -> None:
        super().__init__(controller, "in_use")
        self._module = controller.module(PowerMeterModule)

    @property
    def is_on(self) -> bool:
        return self._module.in_use
