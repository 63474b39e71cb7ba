"""Base entity for the FRITZ!Box Gateway integration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.core import callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity import Entity

from .const import DOMAIN

if TYPE_CHECKING:
    from .controller import AccessoryController


class FritzGatewayEntity(Entity):
    """Entity backed by an accessory controller.

    State is pushed by the controller whenever a cached metric changes, so
    the entity never polls.
    """

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(self, controller: AccessoryController, key: str | None = None) -> None:
        """Initialize the entity.

        Args:
            controller: Controller of the accessory the entity belongs to.
            key: Suffix distinguishing several entities of one accessory.

        """
        self._controller = controller
        self._attr_unique_id = (
            controller.unique_id if key is None else f"{controller.unique_id}_{key}"
        )
        device = controller.device
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, device.identifier)},
            name=device.display_name,
            manufacturer=device.manufacturer or "AVM",
            model=device.product_name,
            sw_version=device.firmware_version,
        )

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self.async_on_remove(self._controller.observe(self._handle_metric_update))

    @callback
    def _handle_metric_update(self, metric: str, value: Any) -> None:  # noqa: ANN401, ARG002
        self.async_write_ha_state()
