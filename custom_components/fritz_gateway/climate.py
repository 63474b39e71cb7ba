"""Climate entities for FRITZ!DECT radiator thermostats.

HVAC mode and action follow the thermostat module: the setpoint "off" maps to
OFF, anything else to HEAT. Changes are applied optimistically and sent to the
FRITZ!Box in the background.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.climate import (
    ClimateEntity,
    ClimateEntityFeature,
    HVACAction,
    HVACMode,
)
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature

from .const import DOMAIN, MODE_HEAT, MODE_OFF, TEMP_MAX, TEMP_MIN
from .controller import (
    AccessoryKind,
    HeatingState,
    TemperatureModule,
    ThermostatModule,
)
from .entity import FritzGatewayEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .controller import AccessoryController

_LOGGER = logging.getLogger(__name__)

HVAC_MODE_MAP = {
    MODE_HEAT: HVACMode.HEAT,
    MODE_OFF: HVACMode.OFF,
}

HVAC_ACTION_MAP = {
    HeatingState.OFF: HVACAction.OFF,
    HeatingState.HEATING: HVACAction.HEATING,
    HeatingState.IDLE: HVACAction.IDLE,
}


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up climate entities for FRITZ!DECT thermostats."""
    controllers = hass.data[DOMAIN][entry.entry_id]["controllers"]
    async_add_entities(
        [
            FritzThermostatEntity(controller)
            for controller in controllers
            if controller.kind == AccessoryKind.THERMOSTAT
        ]
    )


class FritzThermostatEntity(FritzGatewayEntity, ClimateEntity):
    """Climate entity for a FRITZ!DECT radiator thermostat."""

    _attr_name = None
    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_target_temperature_step = 0.5
    _attr_min_temp = TEMP_MIN
    _attr_max_temp = TEMP_MAX
    _attr_hvac_modes = [HVACMode.HEAT, HVACMode.OFF]  # noqa: RUF012
    _attr_supported_features = (
        ClimateEntityFeature.TARGET_TEMPERATURE
        | ClimateEntityFeature.TURN_ON
        | ClimateEntityFeature.TURN_OFF
    )

    def __init__(self, controller: AccessoryController) -> None:
        """Initialize the thermostat entity.

        Args:
            controller: Thermostat accessory controller.

        """
        super().__init__(controller)
        self._thermostat = controller.module(ThermostatModule)
        self._temperature = controller.module(TemperatureModule)

    @property
    def current_temperature(self) -> float | None:
        return self._temperature.temperature if self._temperature else None

    @property
    def target_temperature(self) -> float | None:
        return self._thermostat.target_temperature

    @property
    def hvac_mode(self) -> HVACMode:
        return HVAC_MODE_MAP.get(self._thermostat.mode, HVACMode.HEAT)

    @property
    def hvac_action(self) -> HVACAction:
        return HVAC_ACTION_MAP[self._thermostat.state]

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Switch the thermostat off or back to heating."""
        if hvac_mode not in self._attr_hvac_modes:
            _LOGGER.warning("Unsupported HVAC mode for %s: %s", self.entity_id, hvac_mode)
            return
        self._thermostat.set_mode(MODE_OFF if hvac_mode == HVACMode.OFF else MODE_HEAT)
        self.async_write_ha_state()

    async def async_set_temperature(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Set a new target temperature."""
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return
        self._thermostat.set_temperature(temperature)
        self.async_write_ha_state()

    async def async_turn_on(self) -> None:
        await self.async_set_hvac_mode(HVACMode.HEAT)

    async def async_turn_off(self) -> None:
        await self.async_set_hvac_mode(HVACMode.OFF)
