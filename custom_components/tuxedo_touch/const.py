"""Constants for Tuxedo Touch integration."""

from enum import StrEnum

# Domain
DOMAIN = "tuxedo_touch"
MANUFACTURER = "Honeywell"
MODEL = "Tuxedo Touch"

# Configuration keys
CONF_HOST = "host"
CONF_PORT = "port"
CONF_DEVICE_MAC = "device_mac"
CONF_PRIVATE_KEY = "private_key"
CONF_CODE = "code"
CONF_USERNAME = "username"
CONF_PASSWORD = "password"
CONF_PLATFORMS = "platforms"

# Defaults
DEFAULT_PLATFORMS = ["alarm_control_panel", "cover", "light"]
COOKIE_FILE_NAME = ".storage/tuxedo_touch_cookies.json"

# Encrypted API
API_REV = "API_REV01"
API_ROOT = "system_http_api"
PRIVATE_KEY_SPLIT = 64  # hex chars of signing/encryption key, remainder is the IV
API_TIMEOUT = 15

API_GET_DEVICE_LIST = "GetDeviceList"
API_GET_GARAGE_DOOR_STATUS = "GetGarageDoorStatus"
API_SET_GARAGE_DOOR_STATUS = "SetGarageDoorStatus"
API_GET_SECURITY_STATUS = "GetSecurityStatus"
API_ARM_WITH_CODE = "AdvancedSecurity/ArmWithCode"
API_DISARM_WITH_CODE = "AdvancedSecurity/DisarmWithCode"

DEFAULT_PARTITION = 1

# Web portal
PORTAL_LOGIN_URL = "authenticated/index.html?url=zwavedevicelist.html"
PORTAL_PROTECTED_URL = "zwavedevicelist.html"
PORTAL_EVENT_HANDLER_URL = "eventhandler.html"
PORTAL_COMMAND_URL = "handlerequest.html"

LOGIN_USERNAME_SELECTOR = "#j_username"
LOGIN_PASSWORD_SELECTOR = "#j_password"
LOGIN_SUBMIT_SELECTOR = "#login_confirm"

# Timings (seconds)
SESSION_CHECK_INTERVAL = 3 * 60
LOGIN_TIMEOUT = 30
COMMAND_SETTLE_DELAY = 3
OPTIMISTIC_STATE_TTL = 10


class ArmMode(StrEnum):
    """Arming modes accepted by AdvancedSecurity/ArmWithCode."""

    STAY = "STAY"
    AWAY = "AWAY"
    NIGHT = "NIGHT"


class DoorState(StrEnum):
    """Garage door states reported by GetGarageDoorStatus."""

    OPEN = "Open"
    CLOSED = "Close"
