"""Encrypted REST API client for the Tuxedo Touch panel.

Every call is an independent round trip: the query parameters are
AES-encrypted with the panel's shared key, the request is signed with an
HMAC of the device identity and path, and the JSON envelope that comes back
carries an encrypted `Result` holding the actual payload.
"""

import asyncio
import json
import logging
import random
import ssl
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import aiohttp

from .const import (
    API_ARM_WITH_CODE,
    API_DISARM_WITH_CODE,
    API_GET_DEVICE_LIST,
    API_GET_GARAGE_DOOR_STATUS,
    API_GET_SECURITY_STATUS,
    API_REV,
    API_ROOT,
    API_SET_GARAGE_DOOR_STATUS,
    API_TIMEOUT,
    CONF_CODE,
    CONF_DEVICE_MAC,
    CONF_HOST,
    CONF_PASSWORD,
    CONF_PORT,
    CONF_PRIVATE_KEY,
    CONF_USERNAME,
    DEFAULT_PARTITION,
    ArmMode,
    DoorState,
)
from .crypto import decrypt, encrypt, sign, split_private_key
from .exceptions import ProtocolError, TransportError
from .security import SecurityStatus, parse_door_state, parse_security_status

_LOGGER = logging.getLogger(__name__)

# The panel serves a self-signed certificate over a TLS stack that still
# needs legacy renegotiation.
ssl_context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
ssl_context.check_hostname = False
ssl_context.verify_mode = ssl.CERT_NONE
ssl_context.options |= ssl.OP_LEGACY_SERVER_CONNECT

_REDACTED_PARAMS = ("ucode",)


@dataclass(frozen=True)
class PanelConfig:
    """Connection settings for one panel. Never mutated after setup."""

    host: str
    device_mac: str
    private_key: str = field(repr=False)
    code: str = field(default="", repr=False)
    port: int | None = None
    username: str = ""
    password: str = field(default="", repr=False)

    @classmethod
    def from_entry_data(cls, data) -> "PanelConfig":
        port = data.get(CONF_PORT)
        return cls(
            host=data[CONF_HOST],
            device_mac=data[CONF_DEVICE_MAC],
            private_key=data[CONF_PRIVATE_KEY],
            code=data.get(CONF_CODE, ""),
            port=int(port) if port else None,
            username=data.get(CONF_USERNAME, ""),
            password=data.get(CONF_PASSWORD, ""),
        )

    @property
    def base_url(self) -> str:
        url = f"https://{self.host}"
        if self.port:
            url += f":{self.port}"
        return url

    @property
    def has_portal_credentials(self) -> bool:
        return bool(self.username and self.password)


@dataclass(frozen=True)
class GarageDoorEntry:
    name: str
    node_id: int


@dataclass
class EncryptedRequest:
    """A fully prepared API request."""

    api_path: str
    params: dict[str, str]
    ciphertext: str
    auth_token: str
    nonce: float

    @property
    def body(self) -> str:
        # The panel expects the already URL-encoded ciphertext verbatim
        return f"param={self.ciphertext}&len={len(self.ciphertext)}&tstamp={self.nonce}"


def _redact(params):
    return {k: ("****" if k in _REDACTED_PARAMS else v) for k, v in params.items()}


def build_url(config: PanelConfig, api_path: str) -> str:
    return f"{config.base_url}/{API_ROOT}/{API_REV}/{api_path}"


def build_request(config: PanelConfig, api_path: str, params: dict[str, str]) -> EncryptedRequest:
    """Encrypt and sign params for api_path."""
    key_hex, iv_hex = split_private_key(config.private_key)
    ciphertext = encrypt(urlencode(params), key_hex, iv_hex)
    header = f"MACID:{config.device_mac},Path:{API_REV}/{api_path}"
    return EncryptedRequest(
        api_path=api_path,
        params=dict(params),
        ciphertext=ciphertext,
        auth_token=sign(header, key_hex),
        nonce=random.random(),
    )


def build_headers(config: PanelConfig, request: EncryptedRequest) -> dict[str, str]:
    _, iv_hex = split_private_key(config.private_key)
    return {
        "identity": iv_hex,
        "authToken": request.auth_token,
        "PRAGMA": "no-cache",
        "CACHE_CONTROL": "no-cache",
        "content-type": "application/x-www-form-urlencoded",
    }


async def call(
    session: aiohttp.ClientSession,
    config: PanelConfig,
    api_path: str,
    params: dict[str, str],
) -> Any:
    """Perform one encrypted API call and return the decrypted JSON payload.

    Raises:
        TransportError: the panel could not be reached.
        ProtocolError: bad HTTP status or malformed envelope/payload.
        DecryptionError: the Result field does not decrypt with our key.
        MalformedKeyError: the configured secret is unusable.
    """
    request = build_request(config, api_path, params)
    headers = build_headers(config, request)
    url = build_url(config, api_path)
    _LOGGER.debug("POST %s params=%s", api_path, _redact(params))

    try:
        async with session.post(
            url,
            data=request.body,
            headers=headers,
            ssl=ssl_context,
            timeout=aiohttp.ClientTimeout(total=API_TIMEOUT),
        ) as response:
            if response.status != 200:
                raise ProtocolError(f"{api_path} returned HTTP {response.status}")
            body = await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        raise TransportError(f"{api_path} request failed: {e}") from e

    try:
        envelope = json.loads(body.decode("utf-8"))
    except ValueError as e:
        raise ProtocolError(f"{api_path} returned a non-JSON envelope") from e
    if not isinstance(envelope, dict) or not isinstance(envelope.get("Result"), str):
        raise ProtocolError(f"{api_path} envelope has no Result field")

    key_hex, iv_hex = split_private_key(config.private_key)
    plaintext = decrypt(envelope["Result"], key_hex, iv_hex)
    try:
        payload = json.loads(plaintext)
    except ValueError as e:
        raise ProtocolError(f"{api_path} decrypted payload is not JSON") from e

    _LOGGER.debug("%s response: %s", api_path, payload)
    return payload


class TuxedoApiClient:
    """Typed wrappers around the encrypted API paths used by the entities."""

    def __init__(self, config: PanelConfig, session: aiohttp.ClientSession):
        self._config = config
        self._session = session

    @property
    def config(self) -> PanelConfig:
        return self._config

    async def call(self, api_path, params):
        return await call(self._session, self._config, api_path, params)

    async def get_device_list(self):
        return await self.call(API_GET_DEVICE_LIST, {"category": "All", "operation": "set"})

    async def get_garage_doors(self) -> list[GarageDoorEntry]:
        """Return the garage doors listed under Zwave.GarageDoor.

        Entries without a usable name or node id are logged and skipped.
        """
        device_list = await self.get_device_list()
        zwave = device_list.get("Zwave") if isinstance(device_list, dict) else None
        if not isinstance(zwave, dict):
            _LOGGER.warning("Device list has no Zwave section")
            return []

        doors = []
        for entry in zwave.get("GarageDoor") or []:
            try:
                doors.append(GarageDoorEntry(name=str(entry["Name"]), node_id=int(entry["NodeID"])))
            except (KeyError, TypeError, ValueError) as e:
                _LOGGER.error("Skipping malformed garage door entry %s: %s", entry, e)
        _LOGGER.info("Loaded garage doors: %s", doors)
        return doors

    async def get_security_status(self) -> SecurityStatus:
        response = await self.call(API_GET_SECURITY_STATUS, {"operation": "get"})
        if not isinstance(response, dict):
            raise ProtocolError("GetSecurityStatus payload is not an object")
        status = response.get("Status")
        _LOGGER.debug("Security status: %s", status)
        return parse_security_status(status)

    async def arm(self, mode: ArmMode, partition=DEFAULT_PARTITION):
        return await self.call(
            API_ARM_WITH_CODE,
            {
                "arming": ArmMode(mode).value,
                "pID": str(partition),
                "ucode": self._config.code,
                "operation": "set",
            },
        )

    async def disarm(self, partition=DEFAULT_PARTITION):
        return await self.call(
            API_DISARM_WITH_CODE,
            {"pID": str(partition), "ucode": self._config.code, "operation": "set"},
        )

    async def get_garage_door_status(self, node_id: int) -> DoorState:
        response = await self.call(
            API_GET_GARAGE_DOOR_STATUS, {"nodeID": str(node_id), "operation": "set"}
        )
        try:
            status = response["Result"]["Status"]
        except (KeyError, TypeError) as e:
            raise ProtocolError("GetGarageDoorStatus payload has no Result.Status") from e
        return parse_door_state(status)

    async def set_garage_door_status(self, node_id: int, state: DoorState):
        return await self.call(
            API_SET_GARAGE_DOOR_STATUS,
            {"nodeID": str(node_id), "cntrl": DoorState(state).value, "operation": "set"},
        )


__all__ = [
    "EncryptedRequest",
    "GarageDoorEntry",
    "PanelConfig",
    "TuxedoApiClient",
    "build_request",
    "call",
]
