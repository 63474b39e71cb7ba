"""Data models for the FRITZ!Box Gateway integration."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class Capability(StrEnum):
    """Device capabilities derived from the AHA function bitmask."""

    OUTLET = "outlet"
    THERMOSTAT = "thermostat"
    TEMPERATURE = "temperature"
    ALERT = "alert"
    BUTTON = "button"
    HUMIDITY = "humidity"


@dataclass(frozen=True)
class Session:
    """Represents an authenticated backend session."""

    token: str
    valid_since: datetime


@dataclass
class PendingCall:
    """A backend call waiting in or travelling through the request queue."""

    function_name: str
    args: tuple[Any, ...] = ()
    attempt: int = 0


@dataclass(slots=True)
class CacheEntry:
    """Last known value of one metric of one device."""

    device_id: str
    metric: str
    value: Any
    last_updated: float | None = None
    refresh_in_flight: bool = False


@dataclass(frozen=True)
class ButtonInfo:
    """A single push button of a FRITZ!DECT button device."""

    identifier: str
    name: str
    last_pressed: int | None = None


@dataclass(frozen=True)
class Device:
    """Immutable snapshot of a device as reported by the device list."""

    identifier: str
    capabilities: frozenset[Capability]
    display_name: str
    manufacturer: str | None = None
    product_name: str | None = None
    firmware_version: str | None = None
    present: bool = True
    battery: int | None = None
    alert_state: bool | None = None
    humidity: int | None = None
    temperature: float | None = None
    buttons: tuple[ButtonInfo, ...] = field(default_factory=tuple)

    def has(self, capability: Capability) -> bool:
        """Return True if the device reports the given capability."""
        return capability in self.capabilities
