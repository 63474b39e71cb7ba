"""Tests for the device state cache."""

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.fritz_gateway.api import (
    FritzApiClientError,
    FritzBackendUnavailableError,
)
from custom_components.fritz_gateway.cache import DeviceStateCache
from custom_components.fritz_gateway.const import (
    METRIC_ENERGY,
    METRIC_GUEST_WLAN,
    METRIC_SWITCH_STATE,
    METRIC_TARGET_MODE,
    METRIC_TARGET_TEMPERATURE,
    METRIC_TEMPERATURE,
    MODE_HEAT,
    MODE_OFF,
    MODE_ON,
    TEMP_MAX,
)

from helpers import OUTLET_AIN, THERMOSTAT_AIN, FakeQueue


class TestRead:
    """Tests for DeviceStateCache.read."""

    @pytest.mark.asyncio
    async def test_read_returns_default_before_first_refresh(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that the first read answers immediately with the default."""
        fake_queue.values["get_temperature"] = 21.5
        cache = DeviceStateCache(fake_queue)

        assert cache.read(THERMOSTAT_AIN, METRIC_TEMPERATURE, 20) == 20
        fake_queue.async_invoke.assert_not_called()

        await cache.async_wait_idle()
        assert cache.read(THERMOSTAT_AIN, METRIC_TEMPERATURE, 20) == 21.5
        assert fake_queue.calls[0] == ("get_temperature", THERMOSTAT_AIN)

    @pytest.mark.asyncio
    async def test_read_does_not_duplicate_refresh_in_flight(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that reads during a refresh do not schedule another one."""
        fake_queue.values["get_switch_state"] = True
        cache = DeviceStateCache(fake_queue)

        cache.read(OUTLET_AIN, METRIC_SWITCH_STATE, False)
        cache.read(OUTLET_AIN, METRIC_SWITCH_STATE, False)
        cache.read(OUTLET_AIN, METRIC_SWITCH_STATE, False)
        await cache.async_wait_idle()

        assert fake_queue.calls == [("get_switch_state", OUTLET_AIN)]
        entry = cache.entry(OUTLET_AIN, METRIC_SWITCH_STATE)
        assert entry is not None
        assert entry.refresh_in_flight is False
        assert entry.value is True

    @pytest.mark.asyncio
    async def test_min_refresh_age_skips_recent_entries(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that fresh entries are not refreshed again unless forced."""
        fake_queue.values["get_switch_state"] = True
        cache = DeviceStateCache(fake_queue, min_refresh_age=60)

        cache.read(OUTLET_AIN, METRIC_SWITCH_STATE, False)
        await cache.async_wait_idle()
        cache.read(OUTLET_AIN, METRIC_SWITCH_STATE, False)
        await cache.async_wait_idle()
        assert len(fake_queue.calls) == 1

        cache.read(OUTLET_AIN, METRIC_SWITCH_STATE, False, force=True)
        await cache.async_wait_idle()
        assert len(fake_queue.calls) == 2

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_value(
        self, fake_queue: FakeQueue, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a failing refresh leaves the cached value untouched."""
        fake_queue.values["get_temperature"] = FritzBackendUnavailableError("down")
        cache = DeviceStateCache(fake_queue)

        with caplog.at_level(logging.DEBUG):
            cache.read(THERMOSTAT_AIN, METRIC_TEMPERATURE, 20)
            await cache.async_wait_idle()

        assert cache.get(THERMOSTAT_AIN, METRIC_TEMPERATURE) == 20
        assert cache.entry(THERMOSTAT_AIN, METRIC_TEMPERATURE).refresh_in_flight is False
        assert "Refreshing temperature of 123456 failed" in caplog.text

    @pytest.mark.asyncio
    async def test_refresh_without_information_keeps_value(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that a setpoint of "off" does not overwrite the target temperature."""
        fake_queue.values["get_temp_target"] = MODE_OFF
        cache = DeviceStateCache(fake_queue)

        cache.read(THERMOSTAT_AIN, METRIC_TARGET_TEMPERATURE, 20.0)
        cache.read(THERMOSTAT_AIN, METRIC_TARGET_MODE, MODE_HEAT)
        await cache.async_wait_idle()

        assert cache.get(THERMOSTAT_AIN, METRIC_TARGET_TEMPERATURE) == 20.0
        assert cache.get(THERMOSTAT_AIN, METRIC_TARGET_MODE) == MODE_OFF

    @pytest.mark.asyncio
    async def test_setpoint_on_shows_maximum_temperature(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that a permanently "on" thermostat reports the highest setpoint."""
        fake_queue.values["get_temp_target"] = MODE_ON
        cache = DeviceStateCache(fake_queue)

        cache.read(THERMOSTAT_AIN, METRIC_TARGET_TEMPERATURE, 20.0)
        cache.read(THERMOSTAT_AIN, METRIC_TARGET_MODE, MODE_OFF)
        await cache.async_wait_idle()

        assert cache.get(THERMOSTAT_AIN, METRIC_TARGET_TEMPERATURE) == TEMP_MAX
        assert cache.get(THERMOSTAT_AIN, METRIC_TARGET_MODE) == MODE_HEAT

    @pytest.mark.asyncio
    async def test_async_refresh_converts_energy_to_kilowatt_hours(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that energy readings in Wh are cached in kWh."""
        fake_queue.values["get_switch_energy"] = 3456
        cache = DeviceStateCache(fake_queue)

        assert await cache.async_refresh(OUTLET_AIN, METRIC_ENERGY) == 3.456

    def test_unknown_metric_raises(self, fake_queue: FakeQueue) -> None:
        """Test that unknown metrics are rejected."""
        cache = DeviceStateCache(fake_queue)
        with pytest.raises(FritzApiClientError, match="Unknown metric"):
            cache.seed(OUTLET_AIN, "color", None)


class TestWrite:
    """Tests for DeviceStateCache.write."""

    @pytest.mark.asyncio
    async def test_write_is_visible_immediately(self, fake_queue: FakeQueue) -> None:
        """Test that a written value is read back before the backend answers."""
        fake_queue.values["set_switch_on"] = True
        cache = DeviceStateCache(fake_queue)
        cache.seed(OUTLET_AIN, METRIC_SWITCH_STATE, False)

        task = cache.write(OUTLET_AIN, METRIC_SWITCH_STATE, True)
        assert cache.get(OUTLET_AIN, METRIC_SWITCH_STATE) is True

        await task
        assert fake_queue.calls == [("set_switch_on", OUTLET_AIN)]
        assert cache.get(OUTLET_AIN, METRIC_SWITCH_STATE) is True

    @pytest.mark.asyncio
    async def test_write_applies_backend_result(self, fake_queue: FakeQueue) -> None:
        """Test that the confirmed value replaces the optimistic one."""
        fake_queue.values["set_temp_target"] = lambda ain, value: 28.0  # noqa: ARG005
        cache = DeviceStateCache(fake_queue)

        await cache.write(THERMOSTAT_AIN, METRIC_TARGET_TEMPERATURE, 35.0)
        assert fake_queue.calls == [("set_temp_target", THERMOSTAT_AIN, 35.0)]
        assert cache.get(THERMOSTAT_AIN, METRIC_TARGET_TEMPERATURE) == 28.0

    @pytest.mark.asyncio
    async def test_failed_write_keeps_optimistic_value(
        self, fake_queue: FakeQueue, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a failed write is logged and the written value kept."""
        fake_queue.values["set_switch_off"] = FritzBackendUnavailableError("down")
        cache = DeviceStateCache(fake_queue)
        cache.seed(OUTLET_AIN, METRIC_SWITCH_STATE, True)

        await cache.write(OUTLET_AIN, METRIC_SWITCH_STATE, False)

        assert cache.get(OUTLET_AIN, METRIC_SWITCH_STATE) is False
        assert "Setting switch_state of 087610000434 to False failed" in caplog.text

    @pytest.mark.asyncio
    async def test_target_mode_off_sends_off_setpoint(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that switching the mode off sends "off" as setpoint."""
        fake_queue.values["set_temp_target"] = lambda ain, value: value  # noqa: ARG005
        cache = DeviceStateCache(fake_queue)

        await cache.write(THERMOSTAT_AIN, METRIC_TARGET_MODE, MODE_OFF)
        assert fake_queue.calls == [("set_temp_target", THERMOSTAT_AIN, MODE_OFF)]

    @pytest.mark.asyncio
    async def test_target_mode_heat_is_local_only(self, fake_queue: FakeQueue) -> None:
        """Test that switching the mode to heat only updates the cache."""
        cache = DeviceStateCache(fake_queue)

        await cache.write(THERMOSTAT_AIN, METRIC_TARGET_MODE, MODE_HEAT)
        assert fake_queue.calls == []
        assert cache.get(THERMOSTAT_AIN, METRIC_TARGET_MODE) == MODE_HEAT

    @pytest.mark.asyncio
    async def test_write_results_apply_in_completion_order(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that the last completed mutation wins, not the last issued."""
        release = asyncio.Event()

        async def _invoke(function_name: str, *args: str) -> bool:  # noqa: ARG001
            if function_name == "set_switch_on":
                await release.wait()
                return True
            return False

        fake_queue.async_invoke = AsyncMock(side_effect=_invoke)
        cache = DeviceStateCache(fake_queue)

        first = cache.write(OUTLET_AIN, METRIC_SWITCH_STATE, True)
        second = cache.write(OUTLET_AIN, METRIC_SWITCH_STATE, False)
        await second
        assert cache.get(OUTLET_AIN, METRIC_SWITCH_STATE) is False

        release.set()
        await first
        assert cache.get(OUTLET_AIN, METRIC_SWITCH_STATE) is True

    @pytest.mark.asyncio
    async def test_guest_wlan_write_has_no_device_argument(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that box-wide metrics are written without an AIN."""
        fake_queue.values["set_guest_wlan"] = True
        cache = DeviceStateCache(fake_queue)

        await cache.write("wifi", METRIC_GUEST_WLAN, True)
        assert fake_queue.calls == [("set_guest_wlan", True)]


class TestObserve:
    """Tests for DeviceStateCache.observe."""

    @pytest.mark.asyncio
    async def test_observer_is_called_on_change_only(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that observers see changed values but not repeated ones."""
        fake_queue.values["get_temperature"] = 21.5
        cache = DeviceStateCache(fake_queue)
        callback = Mock()
        cache.observe(THERMOSTAT_AIN, METRIC_TEMPERATURE, callback)

        cache.read(THERMOSTAT_AIN, METRIC_TEMPERATURE, 20)
        await cache.async_wait_idle()
        cache.read(THERMOSTAT_AIN, METRIC_TEMPERATURE, 20)
        await cache.async_wait_idle()

        callback.assert_called_once_with(21.5)

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_notifications(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that a removed observer is no longer called."""
        cache = DeviceStateCache(fake_queue)
        callback = Mock()
        unsubscribe = cache.observe(OUTLET_AIN, METRIC_SWITCH_STATE, callback)
        cache.seed(OUTLET_AIN, METRIC_SWITCH_STATE, False)

        unsubscribe()
        await cache.write(OUTLET_AIN, METRIC_SWITCH_STATE, True)
        callback.assert_not_called()


class TestShutdown:
    """Tests for DeviceStateCache.async_shutdown."""

    @pytest.mark.asyncio
    async def test_async_shutdown_cancels_pending_refreshes(
        self, fake_queue: FakeQueue
    ) -> None:
        """Test that shutting down cancels refreshes not yet completed."""
        cache = DeviceStateCache(fake_queue)
        cache.read(OUTLET_AIN, METRIC_SWITCH_STATE, False)

        await cache.async_shutdown()
        await cache.async_wait_idle()
        fake_queue.async_invoke.assert_not_called()
