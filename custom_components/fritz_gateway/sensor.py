"""Sensor entities for the FRITZ!Box Gateway integration."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.const import (
    PERCENTAGE,
    EntityCategory,
    UnitOfEnergy,
    UnitOfPower,
    UnitOfTemperature,
)

from .const import (
    DOMAIN,
    METRIC_BATTERY,
    METRIC_COMFORT_TEMPERATURE,
    METRIC_ENERGY,
    METRIC_HUMIDITY,
    METRIC_NIGHT_TEMPERATURE,
    METRIC_OS_VERSION,
    METRIC_POWER,
    METRIC_TEMPERATURE,
)
from .controller import (
    AccessoryKind,
    BatteryModule,
    CapabilityModule,
    GuestWifiModule,
    HumidityModule,
    PowerMeterModule,
    TemperatureModule,
    ThermostatModule,
)
from .entity import FritzGatewayEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .controller import AccessoryController


@dataclass(frozen=True, kw_only=True)
class FritzSensorEntityDescription(SensorEntityDescription):
    """Sensor reading one metric through a capability module."""

    module: type[CapabilityModule]
    value_fn: Callable[[Any], Any]
    kinds: frozenset[AccessoryKind] | None = None


SENSOR_DESCRIPTIONS: tuple[FritzSensorEntityDescription, ...] = (
    FritzSensorEntityDescription(
        key=METRIC_TEMPERATURE,
        name="Temperature",
        device_class=SensorDeviceClass.TEMPERATURE,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=UnitOfTemperature.CELSIUS,
        module=TemperatureModule,
        value_fn=lambda module: module.temperature,
        # Thermostats show the current temperature on the climate entity
        kinds=frozenset({AccessoryKind.OUTLET, AccessoryKind.TEMPERATURE_SENSOR}),
    ),
    FritzSensorEntityDescription(
        key=METRIC_POWER,
        name="Power",
        device_class=SensorDeviceClass.POWER,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=UnitOfPower.WATT,
        module=PowerMeterModule,
        value_fn=lambda module: module.power,
    ),
    FritzSensorEntityDescription(
        key=METRIC_ENERGY,
        name="Energy",
        device_class=SensorDeviceClass.ENERGY,
        state_class=SensorStateClass.TOTAL_INCREASING,
        native_unit_of_measurement=UnitOfEnergy.KILO_WATT_HOUR,
        module=PowerMeterModule,
        value_fn=lambda module: module.energy,
    ),
    FritzSensorEntityDescription(
        key=METRIC_BATTERY,
        name="Battery",
        device_class=SensorDeviceClass.BATTERY,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=PERCENTAGE,
        entity_category=EntityCategory.DIAGNOSTIC,
        module=BatteryModule,
        value_fn=lambda module: module.battery,
    ),
    FritzSensorEntityDescription(
        key=METRIC_HUMIDITY,
        name="Humidity",
        device_class=SensorDeviceClass.HUMIDITY,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=PERCENTAGE,
        module=HumidityModule,
        value_fn=lambda module: module.humidity,
    ),
    FritzSensorEntityDescription(
        key=METRIC_COMFORT_TEMPERATURE,
        name="Comfort temperature",
        device_class=SensorDeviceClass.TEMPERATURE,
        native_unit_of_measurement=UnitOfTemperature.CELSIUS,
        entity_category=EntityCategory.DIAGNOSTIC,
        module=ThermostatModule,
        value_fn=lambda module: module.comfort_temperature,
    ),
    FritzSensorEntityDescription(
        key=METRIC_NIGHT_TEMPERATURE,
        name="Night temperature",
        device_class=SensorDeviceClass.TEMPERATURE,
        native_unit_of_measurement=UnitOfTemperature.CELSIUS,
        entity_category=EntityCategory.DIAGNOSTIC,
        module=ThermostatModule,
        value_fn=lambda module: module.night_temperature,
    ),
    FritzSensorEntityDescription(
        key=METRIC_OS_VERSION,
        name="FRITZ!OS version",
        icon="mdi:update",
        entity_category=EntityCategory.DIAGNOSTIC,
        module=GuestWifiModule,
        value_fn=lambda module: module.os_version,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up sensors for every controller with a matching module."""
    controllers = hass.data[DOMAIN][entry.entry_id]["controllers"]
    async_add_entities(
        [
            FritzSensor(controller, description)
            for controller in controllers
            for description in SENSOR_DESCRIPTIONS
            if controller.module(description.module) is not None
            and (description.kinds is None or controller.kind in description.kinds)
        ]
    )


class FritzSensor(FritzGatewayEntity, SensorEntity):
    """Sensor showing one cached metric of an accessory."""

    entity_description: FritzSensorEntityDescription

    def __init__(
        self,
        controller: AccessoryController,
        description: FritzSensorEntityDescription,
    ) -> None:
        super().__init__(controller, description.key)
        self.entity_description = description
        self._module = controller.module(description.module)

    @property
    def native_value(self) -> Any:  # noqa: ANN401
        return self.entity_description.value_fn(self._module)
