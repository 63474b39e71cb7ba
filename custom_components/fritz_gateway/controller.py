"""Accessory controllers for the FRITZ!Box Gateway integration.

An accessory controller binds one discovered device to a set of capability
modules. The modules translate host reads and writes into cache operations
and derive secondary values (low battery, outlet in use, heating state) from
the cached metrics.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import StrEnum
from functools import partial
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_time_interval

from .const import (
    LOW_BATTERY_THRESHOLD,
    METRIC_ALERT,
    METRIC_BATTERY,
    METRIC_BUTTONS,
    METRIC_COMFORT_TEMPERATURE,
    METRIC_ENERGY,
    METRIC_GUEST_WLAN,
    METRIC_HUMIDITY,
    METRIC_NIGHT_TEMPERATURE,
    METRIC_OS_VERSION,
    METRIC_POWER,
    METRIC_SWITCH_STATE,
    METRIC_TARGET_MODE,
    METRIC_TARGET_TEMPERATURE,
    METRIC_TEMPERATURE,
    MODE_HEAT,
    MODE_OFF,
)

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable, Iterable

    from .cache import DeviceStateCache
    from .models import Device

_LOGGER = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 20.0

ModuleT = TypeVar("ModuleT", bound="CapabilityModule")


class AccessoryKind(StrEnum):
    """Kinds of accessories exposed to the host."""

    OUTLET = "outlet"
    THERMOSTAT = "thermostat"
    TEMPERATURE_SENSOR = "temperature_sensor"
    ALARM_SENSOR = "alarm_sensor"
    BUTTON = "button"
    WIFI = "wifi"


class HeatingState(StrEnum):
    """Current state of a radiator thermostat."""

    OFF = "off"
    HEATING = "heating"
    IDLE = "idle"


class CapabilityModule:
    """A capability composed into an accessory controller.

    Attributes:
        defaults: Metrics used by the module and the value each one reports
            before the first refresh.

    """

    defaults: ClassVar[dict[str, Any]] = {}

    def __init__(self) -> None:
        """Initialize an unbound module."""
        self._controller: AccessoryController | None = None

    def bind(self, controller: AccessoryController) -> None:
        """Attach the module to its controller."""
        self._controller = controller

    @property
    def controller(self) -> AccessoryController:
        """Return the owning controller."""
        if self._controller is None:
            error_msg = f"{type(self).__name__} is not bound to a controller"
            raise RuntimeError(error_msg)
        return self._controller


class SwitchModule(CapabilityModule):
    """On/off state of a switchable outlet."""

    defaults: ClassVar[dict[str, Any]] = {METRIC_SWITCH_STATE: False}

    @property
    def is_on(self) -> bool:
        return bool(self.controller.read(METRIC_SWITCH_STATE))

    def set_on(self, value: bool) -> asyncio.Task[None]:  # noqa: FBT001
        return self.controller.write(METRIC_SWITCH_STATE, bool(value))


class PowerMeterModule(CapabilityModule):
    """Power and energy readings of an outlet."""

    defaults: ClassVar[dict[str, Any]] = {METRIC_POWER: 0.0, METRIC_ENERGY: 0.0}

    @property
    def power(self) -> float:
        """Return the current consumption in W."""
        return self.controller.read(METRIC_POWER)

    @property
    def energy(self) -> float:
        """Return the total consumption in kWh."""
        return self.controller.read(METRIC_ENERGY)

    @property
    def in_use(self) -> bool:
        """Return True while the outlet draws power."""
        return (self.controller.get(METRIC_POWER) or 0) > 0


class TemperatureModule(CapabilityModule):
    """Current temperature of any device with a temperature sensor."""

    defaults: ClassVar[dict[str, Any]] = {METRIC_TEMPERATURE: DEFAULT_TEMPERATURE}

    @property
    def temperature(self) -> float | None:
        return self.controller.read(METRIC_TEMPERATURE)


class ThermostatModule(CapabilityModule):
    """Target temperature and heating mode of a radiator thermostat.

    The mode is derived from the backend setpoint: "off" means off, any
    temperature (or "on") means heat. Switching to heat re-sends the cached
    target temperature, switching off sends "off" regardless of it.
    """

    defaults: ClassVar[dict[str, Any]] = {
        METRIC_TARGET_TEMPERATURE: DEFAULT_TEMPERATURE,
        METRIC_TARGET_MODE: MODE_HEAT,
        METRIC_COMFORT_TEMPERATURE: None,
        METRIC_NIGHT_TEMPERATURE: None,
    }

    @property
    def target_temperature(self) -> float | None:
        return self.controller.read(METRIC_TARGET_TEMPERATURE)

    @property
    def mode(self) -> str:
        return self.controller.read(METRIC_TARGET_MODE)

    @property
    def comfort_temperature(self) -> float | None:
        return self.controller.read(METRIC_COMFORT_TEMPERATURE)

    @property
    def night_temperature(self) -> float | None:
        return self.controller.read(METRIC_NIGHT_TEMPERATURE)

    @property
    def state(self) -> HeatingState:
        """Return the current heating state from the cached values."""
        if self.controller.get(METRIC_TARGET_MODE) == MODE_OFF:
            return HeatingState.OFF
        current = self.controller.get(METRIC_TEMPERATURE)
        target = self.controller.get(METRIC_TARGET_TEMPERATURE)
        if current is None or target is None or current <= target:
            return HeatingState.HEATING
        return HeatingState.IDLE

    def set_mode(self, mode: str) -> asyncio.Task[None]:
        """Switch the thermostat off or back to heating."""
        if mode == MODE_OFF:
            return self.controller.write(METRIC_TARGET_MODE, MODE_OFF)
        self.controller.write(METRIC_TARGET_MODE, MODE_HEAT)
        return self.controller.write(
            METRIC_TARGET_TEMPERATURE,
            self.controller.get(METRIC_TARGET_TEMPERATURE, DEFAULT_TEMPERATURE),
        )

    def set_temperature(self, temperature: float) -> asyncio.Task[None]:
        """Set a new target temperature, which implies heating mode."""
        self.controller.write(METRIC_TARGET_MODE, MODE_HEAT)
        return self.controller.write(METRIC_TARGET_TEMPERATURE, float(temperature))


class BatteryModule(CapabilityModule):
    """Battery charge of battery powered devices."""

    defaults: ClassVar[dict[str, Any]] = {METRIC_BATTERY: 100}

    @property
    def battery(self) -> int | None:
        return self.controller.read(METRIC_BATTERY)

    @property
    def low_battery(self) -> bool:
        charge = self.controller.get(METRIC_BATTERY)
        return charge is not None and charge < LOW_BATTERY_THRESHOLD


class HumidityModule(CapabilityModule):
    defaults: ClassVar[dict[str, Any]] = {METRIC_HUMIDITY: None}

    @property
    def humidity(self) -> int | None:
        return self.controller.read(METRIC_HUMIDITY)


class AlarmModule(CapabilityModule):
    """Contact state of an alarm sensor, optionally inverted."""

    defaults: ClassVar[dict[str, Any]] = {METRIC_ALERT: False}

    def __init__(self, *, invert: bool = False) -> None:
        super().__init__()
        self.invert = invert

    @property
    def is_open(self) -> bool:
        return bool(self.controller.read(METRIC_ALERT)) != self.invert


class ButtonModule(CapabilityModule):
    """A single push button of a button device.

    Presses are detected by a change of the button's last-pressed timestamp.
    """

    defaults: ClassVar[dict[str, Any]] = {METRIC_BUTTONS: None}

    def __init__(self, index: int) -> None:
        super().__init__()
        self.index = index
        self._last_seen: int | None = None

    @property
    def last_pressed(self) -> int | None:
        timestamps = self.controller.read(METRIC_BUTTONS)
        if not timestamps or self.index >= len(timestamps):
            return None
        return timestamps[self.index]

    def detect_press(self, timestamps: tuple[int | None, ...] | None) -> bool:
        """Return True if the timestamps report a new press of this button.

        The first timestamp seen only establishes the baseline.
        """
        if not timestamps or self.index >= len(timestamps):
            return False
        current = timestamps[self.index]
        previous, self._last_seen = self._last_seen, current
        return previous is not None and current is not None and current != previous


class GuestWifiModule(CapabilityModule):
    """Guest Wi-Fi toggle and FRITZ!OS version of the box itself."""

    defaults: ClassVar[dict[str, Any]] = {
        METRIC_GUEST_WLAN: False,
        METRIC_OS_VERSION: None,
    }

    @property
    def is_on(self) -> bool:
        return bool(self.controller.read(METRIC_GUEST_WLAN))

    @property
    def os_version(self) -> str | None:
        return self.controller.read(METRIC_OS_VERSION)

    def set_on(self, value: bool) -> asyncio.Task[None]:  # noqa: FBT001
        return self.controller.write(METRIC_GUEST_WLAN, bool(value))


class AccessoryController:
    """Connects one accessory to the device state cache.

    Reads answer from the cache and schedule refreshes, writes are
    optimistic. Once started, every metric of the accessory is refreshed at
    the configured interval.
    """

    def __init__(
        self,
        kind: AccessoryKind,
        device: Device,
        cache: DeviceStateCache,
        modules: Iterable[CapabilityModule],
        *,
        interval: float,
        index: int | None = None,
        name: str | None = None,
    ) -> None:
        """Initialize the controller and seed the cache with defaults.

        Args:
            kind: Accessory kind.
            device: Discovered device snapshot.
            cache: Device state cache.
            modules: Capability modules composing the accessory.
            interval: Refresh interval in seconds.
            index: Button index for button accessories.
            name: Display name, defaults to the device name.

        """
        self.kind = kind
        self.device = device
        self.cache = cache
        self.modules = tuple(modules)
        self.interval = interval
        self.index = index
        self.name = name or device.display_name
        self._unsub_refresh: CALLBACK_TYPE | None = None

        self._defaults: dict[str, Any] = {}
        for module in self.modules:
            module.bind(self)
            self._defaults.update(module.defaults)
        for metric, default in self._defaults.items():
            cache.seed(self.device_id, metric, default)

    @property
    def device_id(self) -> str:
        return self.device.identifier

    @property
    def unique_id(self) -> str:
        """Return a stable id built from kind, AIN and button index."""
        unique_id = f"{self.kind}_{self.device_id}"
        if self.index is not None:
            unique_id = f"{unique_id}_{self.index}"
        return unique_id

    @property
    def metrics(self) -> tuple[str, ...]:
        return tuple(self._defaults)

    def module(self, module_type: type[ModuleT]) -> ModuleT | None:
        """Return the module of the given type, if the accessory has one."""
        for module in self.modules:
            if isinstance(module, module_type):
                return module
        return None

    def read(self, metric: str, default: Any = None) -> Any:  # noqa: ANN401
        if default is None:
            default = self._defaults.get(metric)
        return self.cache.read(self.device_id, metric, default)

    def get(self, metric: str, default: Any = None) -> Any:  # noqa: ANN401
        value = self.cache.get(self.device_id, metric)
        return default if value is None else value

    def write(self, metric: str, value: Any) -> asyncio.Task[None]:  # noqa: ANN401
        _LOGGER.debug("Setting %s of %s to %s", metric, self.name, value)
        return self.cache.write(self.device_id, metric, value)

    def refresh_all(self) -> None:
        """Schedule a refresh of every metric of the accessory."""
        for metric in self._defaults:
            self.cache.read(self.device_id, metric, force=True)

    def observe(self, update_callback: Callable[[str, Any], None]) -> CALLBACK_TYPE:
        """Subscribe to changes of any metric of the accessory.

        Returns:
            Function removing all subscriptions again.

        """
        unsubscribes = [
            self.cache.observe(self.device_id, metric, partial(update_callback, metric))
            for metric in self._defaults
        ]

        def _remove() -> None:
            for unsubscribe in unsubscribes:
                unsubscribe()

        return _remove

    def start(self, hass: HomeAssistant) -> None:
        """Refresh now and then periodically."""
        if self._unsub_refresh is not None:
            return
        _LOGGER.debug(
            "Refreshing %s (%s) every %ss", self.name, self.kind, self.interval
        )
        self.refresh_all()
        self._unsub_refresh = async_track_time_interval(
            hass, self._handle_refresh_interval, timedelta(seconds=self.interval)
        )

    @callback
    def _handle_refresh_interval(self, _now: datetime) -> None:
        self.refresh_all()

    def stop(self) -> None:
        """Cancel the periodic refresh."""
        if self._unsub_refresh is not None:
            self._unsub_refresh()
            self._unsub_refresh = None
