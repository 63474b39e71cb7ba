"""Sample FRITZ!Box data and test doubles shared by the test modules."""

from typing import Any
from unittest.mock import AsyncMock

OUTLET_AIN = "087610000434"
THERMOSTAT_AIN = "123456"
ALARM_AIN = "116300000001"
SENSOR_AIN = "099950000123"
BUTTON_AIN = "130960000222"

DEVICE_LIST_XML = """<devicelist version="1" fwversion="7.57">
<device identifier="08761 0000434" id="17" functionbitmask="35712"
 fwversion="04.25" manufacturer="AVM" productname="FRITZ!DECT 200">
<present>1</present>
<name>Living room outlet</name>
<switch><state>1</state><mode>manuell</mode><lock>0</lock></switch>
<powermeter><power>12500</power><energy>3456</energy></powermeter>
<temperature><celsius>215</celsius><offset>0</offset></temperature>
</device>
<device identifier="123456" id="18" functionbitmask="320"
 fwversion="05.08" manufacturer="AVM" productname="FRITZ!DECT 301">
<present>1</present>
<name>Bathroom radiator</name>
<battery>80</battery>
<batterylow>0</batterylow>
<temperature><celsius>205</celsius><offset>0</offset></temperature>
<hkr><tist>41</tist><tsoll>44</tsoll><absenk>32</absenk><komfort>44</komfort></hkr>
</device>
<device identifier="11630 0000001" id="406" functionbitmask="16"
 fwversion="0.0" manufacturer="0x2c3c" productname="HAN-FUN">
<present>1</present>
<name>Window contact</name>
<alert><state>1</state></alert>
</device>
<device identifier="09995 0000123" id="20" functionbitmask="1048864"
 fwversion="05.10" manufacturer="AVM" productname="FRITZ!DECT 440">
<present>1</present>
<name>Hallway thermometer</name>
<battery>90</battery>
<temperature><celsius>190</celsius><offset>0</offset></temperature>
<humidity><rel_humidity>45</rel_humidity></humidity>
<button identifier="09995 0000123-1" id="5000">
<name>Hallway thermometer: Top right</name>
<lastpressedtimestamp>1700000000</lastpressedtimestamp>
</button>
</device>
<device identifier="13096 0000222" id="21" functionbitmask="32"
 fwversion="05.10" manufacturer="AVM" productname="FRITZ!DECT 400">
<present>1</present>
<name>Bedside button</name>
<battery>15</battery>
<button identifier="13096 0000222-1" id="5001">
<name>Bedside button: short</name>
<lastpressedtimestamp>1700000100</lastpressedtimestamp>
</button>
<button identifier="13096 0000222-9" id="5002">
<name>Bedside button: long</name>
<lastpressedtimestamp></lastpressedtimestamp>
</button>
</device>
<group identifier="grp12345" id="900" functionbitmask="6784"
 fwversion="1.0" manufacturer="AVM" productname="">
<present>1</present>
<name>All radiators</name>
</group>
</devicelist>"""


def session_info_xml(
    sid: str = "0000000000000000",
    challenge: str = "1234567z",
    block_time: int = 0,
    last_user: str = "fritz1234",
) -> str:
    """Build a ``login_sid.lua`` SessionInfo document."""
    return (
        "<SessionInfo>"
        f"<SID>{sid}</SID>"
        f"<Challenge>{challenge}</Challenge>"
        f"<BlockTime>{block_time}</BlockTime>"
        "<Rights></Rights>"
        f'<Users><User>admin</User><User last="1">{last_user}</User></Users>'
        "</SessionInfo>"
    )


class FakeQueue:
    """Request queue double answering calls from a table of values.

    Table values may be callables receiving the call arguments.
    """

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self.values = values or {}
        self.calls: list[tuple[Any, ...]] = []
        self.async_invoke = AsyncMock(side_effect=self._invoke)

    async def _invoke(self, function_name: str, *args: Any) -> Any:  # noqa: ANN401
        self.calls.append((function_name, *args))
        value = self.values.get(function_name)
        if isinstance(value, Exception):
            raise value
        return value(*args) if callable(value) else value

