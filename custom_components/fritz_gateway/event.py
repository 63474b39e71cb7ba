"""Event entities for FRITZ!DECT push buttons."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.event import EventDeviceClass, EventEntity
from homeassistant.core import callback

from .const import DOMAIN, METRIC_BUTTONS
from .controller import AccessoryKind, ButtonModule
from .entity import FritzGatewayEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .controller import AccessoryController

_LOGGER = logging.getLogger(__name__)

EVENT_PRESS = "press"


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up one event entity per button."""
    controllers = hass.data[DOMAIN][entry.entry_id]["controllers"]
    async_add_entities(
        [
            FritzButtonEvent(controller)
            for controller in controllers
            if controller.kind == AccessoryKind.BUTTON
        ]
    )


class FritzButtonEvent(FritzGatewayEntity, EventEntity):
    """Fires a press event when a button reports a new press timestamp."""

    _attr_device_class = EventDeviceClass.BUTTON
    _attr_event_types = [EVENT_PRESS]  # noqa: RUF012

    def __init__(self, controller: AccessoryController) -> None:
        super().__init__(controller)
        self._module = controller.module(ButtonModule)
        self._attr_name = controller.name

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        # Establish the baseline so an old press is not reported again
        self._module.detect_press(self._controller.get(METRIC_BUTTONS))

    @callback
    def _handle_metric_update(self, metric: str, value: Any) -> None:  # noqa: ANN401
        if metric != METRIC_BUTTONS or not self._module.detect_press(value):
            return
        _LOGGER.debug("Button %s pressed", self._controller.name)
        self._trigger_event(
            EVENT_PRESS, {"last_pressed": value[self._module.index]}
        )
        self.async_write_ha_state()
