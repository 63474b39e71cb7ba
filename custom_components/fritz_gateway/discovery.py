"""Device discovery for the FRITZ!Box Gateway integration."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from .api import FritzApiClientError, FritzDiscoveryError, normalize_ain
from .const import DEFAULT_WIFI_NAME, WIFI_DEVICE_ID
from .controller import (
    AccessoryController,
    AccessoryKind,
    AlarmModule,
    BatteryModule,
    ButtonModule,
    CapabilityModule,
    GuestWifiModule,
    HumidityModule,
    PowerMeterModule,
    SwitchModule,
    TemperatureModule,
    ThermostatModule,
)
from .models import Capability, Device

if TYPE_CHECKING:
    from .cache import DeviceStateCache
    from .config import GatewayConfig
    from .request_queue import RequestQueue

_LOGGER = logging.getLogger(__name__)


class DiscoveryService:
    """Enumerates devices and builds one controller per accessory."""

    def __init__(
        self,
        queue: RequestQueue,
        cache: DeviceStateCache,
        config: GatewayConfig,
    ) -> None:
        """Initialize the discovery service.

        Args:
            queue: Request queue used to fetch the device list.
            cache: Cache shared by all created controllers.
            config: Gateway configuration with the device overrides.

        """
        self._queue = queue
        self._cache = cache
        self._config = config

    async def async_discover(self) -> list[Device]:
        """Return the devices known to the FRITZ!Box.

        A failing device list degrades to no devices; the Wi-Fi meta device
        is still returned unless hidden.
        """
        devices: list[Device] = []
        try:
            devices = await self._async_fetch_devices()
        except FritzDiscoveryError as err:
            _LOGGER.error(
                "Could not get devices from FRITZ!Box. Please check if the device "
                "supports the smart home API and the user has sufficient "
                "privileges: %s",
                err,
            )

        if self._config.device_config(f"{WIFI_DEVICE_ID}.display", True):
            devices.append(
                Device(
                    identifier=WIFI_DEVICE_ID,
                    capabilities=frozenset(),
                    display_name=self._config.device_config(
                        f"{WIFI_DEVICE_ID}.name", DEFAULT_WIFI_NAME
                    ),
                    manufacturer="AVM",
                    product_name="FRITZ!Box",
                )
            )
        return devices

    async def _async_fetch_devices(self) -> list[Device]:
        try:
            reported = await self._queue.async_invoke("get_device_list")
        except FritzApiClientError as err:
            error_msg = f"Device list unavailable: {err}"
            raise FritzDiscoveryError(error_msg) from err

        devices: dict[str, Device] = {}
        for device in reported:
            identifier = normalize_ain(device.identifier)
            if not identifier or identifier in devices:
                continue
            devices[identifier] = replace(device, identifier=identifier)
        _LOGGER.debug("Discovered %d device(s)", len(devices))
        return list(devices.values())

    def _is_displayed(self, ain: str) -> bool:
        return bool(self._config.device_config(f"{ain}.display", True))

    def _controller(
        self,
        kind: AccessoryKind,
        device: Device,
        modules: list[CapabilityModule],
        **kwargs: int | str | None,
    ) -> AccessoryController:
        return AccessoryController(
            kind,
            device,
            self._cache,
            modules,
            interval=self._config.interval,
            **kwargs,
        )

    def create_controllers(self, devices: list[Device]) -> list[AccessoryController]:
        """Create the accessory controllers for the discovered devices.

        Devices are matched by kind in a fixed order. Temperature sensors and
        buttons are only created for devices without an accessory yet.
        """
        controllers: list[AccessoryController] = []
        claimed: set[str] = set()

        for device in devices:
            if device.identifier == WIFI_DEVICE_ID:
                controllers.append(
                    self._controller(AccessoryKind.WIFI, device, [GuestWifiModule()])
                )

        hardware = [device for device in devices if device.identifier != WIFI_DEVICE_ID]

        outlets = [device for device in hardware if device.has(Capability.OUTLET)]
        for device in outlets:
            ain = device.identifier
            claimed.add(ain)
            if not self._is_displayed(ain):
                continue
            modules: list[CapabilityModule] = [SwitchModule(), PowerMeterModule()]
            if device.has(Capability.TEMPERATURE) and self._config.device_config(
                f"{ain}.TemperatureSensor", True
            ):
                modules.append(TemperatureModule())
            controllers.append(self._controller(AccessoryKind.OUTLET, device, modules))
        _log_found("Outlets", outlets)

        thermostats = [
            device for device in hardware if device.has(Capability.THERMOSTAT)
        ]
        for device in thermostats:
            claimed.add(device.identifier)
            if not self._is_displayed(device.identifier):
                continue
            controllers.append(
                self._controller(
                    AccessoryKind.THERMOSTAT,
                    device,
                    [TemperatureModule(), ThermostatModule(), BatteryModule()],
                )
            )
        _log_found("Thermostats", thermostats)

        sensors = [
            device
            for device in hardware
            if device.has(Capability.TEMPERATURE) and device.identifier not in claimed
        ]
        for device in sensors:
            ain = device.identifier
            claimed.add(ain)
            if not self._is_displayed(ain) or not self._config.device_config(
                f"{ain}.TemperatureSensor", True
            ):
                continue
            modules = [TemperatureModule()]
            if device.has(Capability.HUMIDITY):
                modules.append(HumidityModule())
            if device.battery is not None:
                modules.append(BatteryModule())
            controllers.append(
                self._controller(AccessoryKind.TEMPERATURE_SENSOR, device, modules)
            )
        _log_found("Sensors", sensors)

        alarms = [device for device in hardware if device.has(Capability.ALERT)]
        for device in alarms:
            ain = device.identifier
            claimed.add(ain)
            if not self._is_displayed(ain) or not self._config.device_config(
                f"{ain}.ContactSensor", True
            ):
                continue
            invert = bool(self._config.device_config(f"{ain}.invert", False))
            controllers.append(
                self._controller(
                    AccessoryKind.ALARM_SENSOR, device, [AlarmModule(invert=invert)]
                )
            )
        _log_found("Alarm sensors", alarms)

        buttons = [
            device
            for device in hardware
            if device.has(Capability.BUTTON) and device.identifier not in claimed
        ]
        for device in buttons:
            if not self._is_displayed(device.identifier):
                continue
            for index, button in enumerate(device.buttons):
                modules = [ButtonModule(index)]
                if index == 0 and device.battery is not None:
                    modules.append(BatteryModule())
                controllers.append(
                    self._controller(
                        AccessoryKind.BUTTON,
                        device,
                        modules,
                        index=index,
                        name=button.name,
                    )
                )
        _log_found("Buttons", buttons)

        return controllers


def _log_found(label: str, devices: list[Device]) -> None:
    names = ",".join(device.identifier for device in devices)
    _LOGGER.info("%s found: %s", label, names or "none")
