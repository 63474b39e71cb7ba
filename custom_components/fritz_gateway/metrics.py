"""Metric definitions for the FRITZ!Box Gateway integration.

Each metric names the backend function that refreshes it, how the raw
answer is converted into the cached value and, for writable metrics, which
backend call carries a new value.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .const import (
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
    MODE_ON,
    TEMP_MAX,
)
from .models import Device

Command = tuple[str, tuple[Any, ...]]


def _identity(value: Any) -> Any:  # noqa: ANN401
    return value


def _numeric(value: Any) -> float | None:  # noqa: ANN401
    """Keep numeric setpoints only; "on"/"off" carry no temperature."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def _target_temperature(value: Any) -> float | None:  # noqa: ANN401
    """Show a permanently "on" setpoint as the highest temperature."""
    if value == MODE_ON:
        return TEMP_MAX
    return _numeric(value)


def _mode(value: Any) -> str | None:  # noqa: ANN401
    if value is None:
        return None
    return MODE_OFF if value == MODE_OFF else MODE_HEAT


def _kilowatt_hours(value: int | None) -> float | None:
    return None if value is None else value / 1000.0


def _alert(device: Device | None) -> bool | None:
    return None if device is None else device.alert_state


def _humidity(device: Device | None) -> int | None:
    return None if device is None else device.humidity


def _button_timestamps(device: Device | None) -> tuple[int | None, ...] | None:
    if device is None:
        return None
    return tuple(button.last_pressed for button in device.buttons)


def _switch_command(value: bool) -> Command:  # noqa: FBT001
    return ("set_switch_on" if value else "set_switch_off", ())


def _target_temperature_command(value: float) -> Command:
    return ("set_temp_target", (value,))


def _target_mode_command(value: str) -> Command | None:
    # Switching to heat is completed by re-sending the target temperature
    if value == MODE_OFF:
        return ("set_temp_target", (MODE_OFF,))
    return None


def _guest_wlan_command(value: bool) -> Command:  # noqa: FBT001
    return ("set_guest_wlan", (bool(value),))


@dataclass(frozen=True, kw_only=True)
class MetricDescription:
    """Describes how a cached metric is refreshed and written.

    Attributes:
        key: Metric key inside the device state cache.
        function: Backend function returning the raw value.
        uses_ain: Whether the device AIN is passed as first argument.
        convert: Maps the raw backend answer to the cached value. Returning
            None keeps the previously cached value.
        command: Maps a written value to a backend call, or None for a
            write that only updates the cache.

    """

    key: str
    function: str
    uses_ain: bool = True
    convert: Callable[[Any], Any] = _identity
    command: Callable[[Any], Command | None] | None = None

    def args(self, device_id: str) -> tuple[Any, ...]:
        """Return the backend arguments identifying the device."""
        return (device_id,) if self.uses_ain else ()

    @property
    def writable(self) -> bool:
        """Return True if the metric accepts writes."""
        return self.command is not None


METRICS: dict[str, MetricDescription] = {
    description.key: description
    for description in (
        MetricDescription(
            key=METRIC_SWITCH_STATE,
            function="get_switch_state",
            command=_switch_command,
        ),
        MetricDescription(key=METRIC_POWER, function="get_switch_power"),
        MetricDescription(
            key=METRIC_ENERGY,
            function="get_switch_energy",
            convert=_kilowatt_hours,
        ),
        MetricDescription(key=METRIC_TEMPERATURE, function="get_temperature"),
        MetricDescription(
            key=METRIC_TARGET_TEMPERATURE,
            function="get_temp_target",
            convert=_target_temperature,
            command=_target_temperature_command,
        ),
        MetricDescription(
            key=METRIC_TARGET_MODE,
            function="get_temp_target",
            convert=_mode,
            command=_target_mode_command,
        ),
        MetricDescription(
            key=METRIC_COMFORT_TEMPERATURE,
            function="get_temp_comfort",
            convert=_numeric,
        ),
        MetricDescription(
            key=METRIC_NIGHT_TEMPERATURE,
            function="get_temp_night",
            convert=_numeric,
        ),
        MetricDescription(key=METRIC_BATTERY, function="get_battery_charge"),
        MetricDescription(key=METRIC_HUMIDITY, function="get_device", convert=_humidity),
        MetricDescription(key=METRIC_ALERT, function="get_device", convert=_alert),
        MetricDescription(
            key=METRIC_BUTTONS,
            function="get_device",
            convert=_button_timestamps,
        ),
        MetricDescription(
            key=METRIC_GUEST_WLAN,
            function="get_guest_wlan",
            uses_ain=False,
            command=_guest_wlan_command,
        ),
        MetricDescription(
            key=METRIC_OS_VERSION,
            function="get_os_version",
            uses_ain=False,
        ),
    )
}
