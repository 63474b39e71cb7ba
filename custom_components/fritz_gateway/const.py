"""Constants for the FRITZ!Box Gateway integration.

This module contains all the constants used throughout the integration,
including backend endpoints, configuration keys, defaults and metric keys.
"""

DOMAIN = "fritz_gateway"

DEFAULT_URL = "http://fritz.box"
DEFAULT_POLL_INTERVAL = 60  # Seconds between periodic accessory refreshes
DEFAULT_TIMEOUT = 10.0
DEFAULT_MIN_REFRESH_AGE = 5.0  # Host reads within this window reuse the cache
DEFAULT_CONCURRENCY_WIDTH = 3

RETRY_DELAY = 3.0  # Seconds to wait before retrying after a transport failure
MAX_ATTEMPTS = 3

LOGIN_PATH = "/login_sid.lua"
AHA_PATH = "/webservices/homeautoswitch.lua"
BOXINFO_PATH = "/jason_boxinfo.xml"
INVALID_SID = "0000000000000000"

TR064_PORT = 49000
TR064_WLAN_SERVICE = "urn:dslforum-org:service:WLANConfiguration:{index}"
TR064_WLAN_CONTROL = "/upnp/control/wlanconfig{index}"
TR064_DESC_PATH = "/tr64desc.xml"
# Guest Wi-Fi is WLANConfiguration:3 on dual-band boxes, :2 on single-band ones
GUEST_WLAN_INDEXES = (3, 2)

CONF_URL = "url"
CONF_INTERVAL = "interval"
CONF_CONCURRENT = "concurrent"
CONF_MAX_CONCURRENT = "max_concurrent"
CONF_MIN_REFRESH_AGE = "min_refresh_age"
CONF_DEVICES = "devices"

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_INVALID_URL = "invalid_url"
ERROR_UNKNOWN = "unknown_error"

WIFI_DEVICE_ID = "wifi"
DEFAULT_WIFI_NAME = "Guest WLAN"

LOW_BATTERY_THRESHOLD = 20

# Setpoint limits of FRITZ!DECT radiator controllers, in degrees Celsius
TEMP_MIN = 8.0
TEMP_MAX = 28.0
HKR_OFF = 253
HKR_ON = 254

# Cached metric keys
METRIC_SWITCH_STATE = "switch_state"
METRIC_POWER = "power"
METRIC_ENERGY = "energy"
METRIC_TEMPERATURE = "temperature"
METRIC_TARGET_TEMPERATURE = "target_temperature"
METRIC_TARGET_MODE = "target_mode"
METRIC_COMFORT_TEMPERATURE = "comfort_temperature"
METRIC_NIGHT_TEMPERATURE = "night_temperature"
METRIC_BATTERY = "battery"
METRIC_HUMIDITY = "humidity"
METRIC_ALERT = "alert"
METRIC_BUTTONS = "buttons"
METRIC_GUEST_WLAN = "guest_wlan"
METRIC_OS_VERSION = "os_version"

MODE_HEAT = "heat"
MODE_OFF = "off"
MODE_ON = "on"
