import argparse
import asyncio
import json
import logging
import secrets
import time
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response

from custom_components.tuxedo_touch.const import (
    API_ARM_WITH_CODE,
    API_DISARM_WITH_CODE,
    API_GET_DEVICE_LIST,
    API_GET_GARAGE_DOOR_STATUS,
    API_GET_SECURITY_STATUS,
    API_REV,
    API_SET_GARAGE_DOOR_STATUS,
)
from custom_components.tuxedo_touch.crypto import decrypt, encrypt, sign, split_private_key
from custom_components.tuxedo_touch.exceptions import DecryptionError
from custom_components.tuxedo_touch.security import SecurityStatus

# ============================================================================
# Configuration & Constants
# ============================================================================

DEVICE_MAC = "00:11:22:33:44:55"
PRIVATE_KEY = "00112233445566778899aabbccddeeff" * 2 + "0f1e2d3c4b5a69788796a5b4c3d2e1f0"
PORTAL_USERNAME = "admin"
PORTAL_PASSWORD = "admin"
ARMING_CODE = "1234"

SESSION_COOKIE = "JSESSIONID"
LOGIN_PATH = "/authenticated/index.html?url=zwavedevicelist.html"

ARM_MODE_STATUS = {
    "STAY": SecurityStatus.ARMED_STAY,
    "AWAY": SecurityStatus.ARMED_AWAY,
    "NIGHT": SecurityStatus.ARMED_NIGHT,
}

# Portal command codes
CMD_SWITCH = "109"
CMD_DIM = "111"

logger = logging.getLogger("tuxedo_simulator")


# ============================================================================
# Simulator State
# ============================================================================


class SimulatorState:
    """In-memory state of a fake Tuxedo Touch panel."""

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.session_ttl: Optional[float] = None
        self.reset()

    def reset(self) -> None:
        self.security_status: str = SecurityStatus.READY_TO_ARM
        self.garage_doors: Dict[int, Dict[str, Any]] = {
            5: {"Name": "Garage Door", "NodeID": 5, "Status": "Close"},
        }
        self.lights: Dict[int, Dict[str, Any]] = {
            7: {"name": "Kitchen", "kind": "binary", "on": False},
            8: {"name": "Living Room", "kind": "dimmer", "level": 0},
        }
        # cookie value -> (portal session id, login time)
        self.sessions: Dict[str, tuple[str, float]] = {}
        self.token_keys: set[str] = set()
        self.commands: List[Dict[str, str]] = []

    def open_session(self) -> str:
        cookie = secrets.token_hex(16)
        self.sessions[cookie] = (secrets.token_hex(8), time.monotonic())
        return cookie

    def session_for(self, cookie: Optional[str]) -> Optional[str]:
        """Return the portal session id for a cookie, dropping expired ones."""
        if not cookie or cookie not in self.sessions:
            return None
        session_id, started = self.sessions[cookie]
        if self.session_ttl is not None and time.monotonic() - started > self.session_ttl:
            logger.info("[PORTAL] Session %s expired", cookie[:6])
            del self.sessions[cookie]
            return None
        return session_id

    def expire_sessions(self) -> int:
        count = len(self.sessions)
        self.sessions.clear()
        self.token_keys.clear()
        return count


state = SimulatorState()
app = FastAPI(title="Tuxedo Touch Simulator")


# ============================================================================
# Encrypted API
# ============================================================================


def _raw_form_value(body: str, name: str) -> Optional[str]:
    # The ciphertext is already URL-encoded; keep it verbatim for decrypt()
    for pair in body.split("&"):
        key, _, value = pair.partition("=")
        if key == name:
            return value
    return None


def _api_response(payload: Any) -> JSONResponse:
    key_hex, iv_hex = split_private_key(PRIVATE_KEY)
    return JSONResponse(content={"Result": encrypt(json.dumps(payload), key_hex, iv_hex)})


def _handle_api(path: str, params: Dict[str, str]) -> Optional[Any]:
    if path == API_GET_SECURITY_STATUS:
        return {"Status": str(state.security_status)}

    if path == API_ARM_WITH_CODE:
        status = ARM_MODE_STATUS.get(params.get("arming", ""))
        if status is None or params.get("ucode") != ARMING_CODE:
            return None
        state.security_status = status
        logger.info("[API] Armed %s", params["arming"])
        return {"Result": "Success"}

    if path == API_DISARM_WITH_CODE:
        if params.get("ucode") != ARMING_CODE:
            return None
        state.security_status = SecurityStatus.READY_TO_ARM
        logger.info("[API] Disarmed")
        return {"Result": "Success"}

    if path == API_GET_DEVICE_LIST:
        return {
            "Zwave": {
                "GarageDoor": [
                    {"Name": d["Name"], "NodeID": d["NodeID"]} for d in state.garage_doors.values()
                ],
            }
        }

    if path in (API_GET_GARAGE_DOOR_STATUS, API_SET_GARAGE_DOOR_STATUS):
        door = state.garage_doors.get(int(params.get("nodeID", "0")))
        if door is None:
            return None
        if path == API_SET_GARAGE_DOOR_STATUS:
            if params.get("cntrl") not in ("Open", "Close"):
                return None
            door["Status"] = params["cntrl"]
            logger.info("[API] Garage door %s -> %s", door["NodeID"], door["Status"])
            return {"Result": "Success"}
        return {"Result": {"Status": door["Status"]}}

    return None


@app.post(f"/system_http_api/{API_REV}/{{path:path}}", response_model=None)
async def encrypted_api(path: str, request: Request) -> Response:
    key_hex, iv_hex = split_private_key(PRIVATE_KEY)
    expected = sign(f"MACID:{DEVICE_MAC},Path:{API_REV}/{path}", key_hex)
    if request.headers.get("authToken") != expected or request.headers.get("identity") != iv_hex:
        logger.warning("[API] Rejected %s: bad signature", path)
        return JSONResponse(status_code=401, content={"detail": "Unauthorized"})

    body = (await request.body()).decode("utf-8")
    ciphertext = _raw_form_value(body, "param")
    if ciphertext is None or _raw_form_value(body, "len") != str(len(ciphertext)):
        return JSONResponse(status_code=400, content={"detail": "Malformed body"})

    try:
        params = dict(parse_qsl(decrypt(ciphertext, key_hex, iv_hex), keep_blank_values=True))
    except DecryptionError:
        logger.warning("[API] Rejected %s: undecryptable payload", path)
        return JSONResponse(status_code=400, content={"detail": "Bad ciphertext"})

    logger.debug("[API] %s %s", path, {k: v for k, v in params.items() if k != "ucode"})
    async with state.lock:
        payload = _handle_api(path, params)
    if payload is None:
        return JSONResponse(status_code=404, content={"detail": f"Cannot handle {path}"})
    return _api_response(payload)


# ============================================================================
# Web portal
# ============================================================================

LOGIN_PAGE = """<!DOCTYPE html>
<html><head><title>Tuxedo Touch</title></head>
<body>
<form method="post" action="/j_security_check">
  <input type="text" id="j_username" name="j_username">
  <input type="password" id="j_password" name="j_password">
  <button type="submit" id="login_confirm">Login</button>
</form>
</body></html>
"""


def _card(node_id: int, name: str, container_class: str, anchor_text: str, extra: str) -> str:
    return f"""
<div class="deviceCard">
  <div class="deviceNameText">{name}</div>
  <div class="deviceRow">
    <div class="deviceCell">
      <div class="{container_class}"><a id="deviceOff{node_id}">{anchor_text}</a></div>
    </div>
  </div>
  {extra}
</div>"""


def render_device_list(session_id: str) -> str:
    cards = []
    for node_id, light in state.lights.items():
        if light["kind"] == "dimmer":
            extra = f'<input class="dimmerPercentage" value="{light["level"]}">'
            cards.append(_card(node_id, light["name"], "onoffDimmerBtnContainer", "Off", extra))
        else:
            icon = "cell_switch_bulb_on" if light["on"] else "cell_switch_bulb_off"
            cards.append(_card(node_id, light["name"], "onoffBtnContainer", "Off", f'<span class="{icon}"></span>'))
    for node_id, door in state.garage_doors.items():
        cards.append(_card(node_id, door["Name"], "onoffBtnContainer", "Open", ""))

    return f"""<!DOCTYPE html>
<html><head><title>Z-Wave Devices</title></head>
<body>
<div id="infoDiv" style="display: none">Uploading device list...</div>
<input type="hidden" id="hidSession" value="{session_id}">
{"".join(cards)}
</body></html>
"""


def _apply_command(params: Dict[str, str]) -> bool:
    light = state.lights.get(int(params.get("pID", "0")))
    if light is None:
        return False
    if params.get("cmd") == CMD_SWITCH and light["kind"] == "binary":
        light["on"] = params.get("uCode") == "255"
    elif params.get("cmd") == CMD_DIM and light["kind"] == "dimmer":
        light["level"] = max(0, min(100, int(params.get("filters", "0"))))
    else:
        return False
    logger.info("[PORTAL] Light %s -> %s", params["pID"], light)
    return True


@app.get("/zwavedevicelist.html", response_model=None)
async def device_list(request: Request) -> Response:
    session_id = state.session_for(request.cookies.get(SESSION_COOKIE))
    if session_id is None:
        return RedirectResponse(LOGIN_PATH, status_code=302)
    return HTMLResponse(render_device_list(session_id))


@app.get("/authenticated/index.html", response_class=HTMLResponse)
async def login_page() -> str:
    return LOGIN_PAGE


@app.post("/j_security_check", response_model=None)
async def security_check(request: Request) -> Response:
    form = dict(parse_qsl((await request.body()).decode("utf-8")))
    if form.get("j_username") != PORTAL_USERNAME or form.get("j_password") != PORTAL_PASSWORD:
        logger.warning("[PORTAL] Failed login for %s", form.get("j_username"))
        return RedirectResponse(LOGIN_PATH, status_code=302)

    cookie = state.open_session()
    logger.info("[PORTAL] Login accepted, session %s", cookie[:6])
    response = RedirectResponse("/zwavedevicelist.html", status_code=302)
    response.set_cookie(SESSION_COOKIE, cookie)
    return response


@app.get("/eventhandler.html", response_model=None)
async def event_handler(request: Request) -> Response:
    if state.session_for(request.cookies.get(SESSION_COOKIE)) is None:
        return PlainTextResponse("Forbidden", status_code=403)
    token_key = secrets.token_hex(8)
    state.token_keys.add(token_key)
    return HTMLResponse(f'<html><body><input type="hidden" id="hiddenKey" value="{token_key}"></body></html>')


@app.get("/handlerequest.html", response_model=None)
async def handle_request(request: Request) -> Response:
    session_id = state.session_for(request.cookies.get(SESSION_COOKIE))
    params = dict(request.query_params)
    token_key = params.get("tokenkey")
    if session_id is None or params.get("sessionid") != session_id or token_key not in state.token_keys:
        logger.warning("[PORTAL] Rejected command %s", params.get("cmd"))
        return PlainTextResponse("Forbidden", status_code=403)

    state.token_keys.discard(token_key)
    async with state.lock:
        state.commands.append(params)
        ok = _apply_command(params)
    if not ok:
        return PlainTextResponse("Bad command", status_code=400)
    return PlainTextResponse("OK")


# ============================================================================
# Manual controls
# ============================================================================


@app.get("/api/state", include_in_schema=False)
async def api_state() -> Dict[str, Any]:
    """Get current state of the simulated panel."""
    return {
        "security_status": str(state.security_status),
        "garage_doors": list(state.garage_doors.values()),
        "lights": {str(k): v for k, v in state.lights.items()},
        "active_sessions": len(state.sessions),
        "commands": state.commands[-20:],
    }


@app.post("/api/security", response_model=None)
async def api_set_security(values: Dict[str, str]) -> Response:
    """Force a raw security status string, e.g. "Armed Away Alarm" or "12 Secs Remaining"."""
    status = values.get("status")
    if not status:
        return JSONResponse(status_code=400, content={"detail": "status is required"})
    async with state.lock:
        state.security_status = status
    return JSONResponse(content={"security_status": status})


@app.post("/api/lights/{node_id}/toggle", response_model=None)
async def api_toggle_light(node_id: int) -> Response:
    async with state.lock:
        light = state.lights.get(node_id)
        if not light:
            return JSONResponse(status_code=404, content={"detail": "Light not found"})
        if light["kind"] == "dimmer":
            light["level"] = 0 if light["level"] else 100
        else:
            light["on"] = not light["on"]
        return JSONResponse(content=light)


@app.post("/api/garage/{node_id}/toggle", response_model=None)
async def api_toggle_garage(node_id: int) -> Response:
    async with state.lock:
        door = state.garage_doors.get(node_id)
        if not door:
            return JSONResponse(status_code=404, content={"detail": "Garage door not found"})
        door["Status"] = "Open" if door["Status"] == "Close" else "Close"
        return JSONResponse(content=door)


@app.post("/api/sessions/expire")
async def api_expire_sessions() -> Dict[str, Any]:
    """Drop every portal session to exercise re-login."""
    async with state.lock:
        count = state.expire_sessions()
    logger.info("[PORTAL] Expired %d session(s)", count)
    return {"expired": count}


# ============================================================================
# Entry point
# ============================================================================


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colored output for different log levels."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        log_color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"
        return super().format(record)


def build_log_config(log_level: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": ColoredFormatter,
                "fmt": "%(levelname)-8s [%(asctime)s] %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": log_level, "propagate": False},
            "uvicorn.access": {"handlers": ["default"], "level": "WARNING", "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": log_level, "propagate": False},
            "tuxedo_simulator": {"handlers": ["default"], "level": log_level, "propagate": False},
        },
    }


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser(description="Tuxedo Touch Simulator")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (default: INFO)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run simulator on (default: 8000)",
    )
    parser.add_argument(
        "--session-ttl",
        type=float,
        default=None,
        help="Expire portal sessions after this many seconds (default: never)",
    )
    parser.add_argument("--ssl-certfile", type=str, default=None, help="Serve HTTPS with this certificate")
    parser.add_argument("--ssl-keyfile", type=str, default=None, help="Private key for --ssl-certfile")
    args = parser.parse_args()

    state.session_ttl = args.session_ttl

    print("\n" + "=" * 80)
    print("Starting Tuxedo Touch Simulator on port " + str(args.port))
    print("Device MAC:  " + DEVICE_MAC)
    print("Private key: " + PRIVATE_KEY)
    print("Portal login: %s / %s, arming code %s" % (PORTAL_USERNAME, PORTAL_PASSWORD, ARMING_CODE))
    print("=" * 80 + "\n")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
        reload=False,
        log_config=build_log_config(args.log_level),
        ssl_certfile=args.ssl_certfile,
        ssl_keyfile=args.ssl_keyfile,
    )
