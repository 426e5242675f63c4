"""Outbound command definitions.

Commands are plain JSON objects sent from the plugin to the controller:

    {"event": "setTitle", "context": "...", "payload": {"title": "3", "target": 0}}

``action``, ``context`` and ``payload`` are left out when not given.
"""

from __future__ import annotations

import json
from enum import Enum, IntEnum
from typing import Any

from ..errors import UnserializableCommand


class CommandKey(str, Enum):
    """All command kinds a plugin can send."""

    # Settings
    SET_SETTINGS = "setSettings"
    GET_SETTINGS = "getSettings"
    SET_GLOBAL_SETTINGS = "setGlobalSettings"
    GET_GLOBAL_SETTINGS = "getGlobalSettings"

    # Controller application
    OPEN_URL = "openUrl"
    LOG_MESSAGE = "logMessage"
    SWITCH_TO_PROFILE = "switchToProfile"

    # Key appearance
    SET_TITLE = "setTitle"
    SET_IMAGE = "setImage"
    SHOW_ALERT = "showAlert"
    SHOW_OK = "showOk"
    SET_STATE = "setState"

    # Property inspector
    SEND_TO_PROPERTY_INSPECTOR = "sendToPropertyInspector"


class Target(IntEnum):
    """Where a title or image change is displayed."""

    BOTH = 0
    HARDWARE = 1
    SOFTWARE = 2


def build_command(
    kind: CommandKey | str,
    action: str | None = None,
    context: str | None = None,
    payload: dict[str, Any] | None = None,
    device: str | None = None,
) -> dict[str, Any]:
    """Build a command object, leaving out absent optional fields."""
    message: dict[str, Any] = {
        "event": kind.value if isinstance(kind, CommandKey) else kind,
    }
    if action is not None:
        message["action"] = action
    if context is not None:
        message["context"] = context
    if device is not None:
        message["device"] = device
    if payload is not None:
        message["payload"] = payload
    return message


def registration_message(event: str, uuid: str) -> dict[str, Any]:
    """Build the handshake sent once right after connecting."""
    return {"event": event, "uuid": uuid}


def encode_command(message: dict[str, Any]) -> str:
    """Serialize a command to compact JSON.

    Raises:
        UnserializableCommand: If the message contains values JSON cannot
            represent, such as arbitrary objects or NaN
    """
    try:
        return json.dumps(message, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise UnserializableCommand(str(message.get("event")), str(e)) from e


# =============================================================================
# Payload helpers
# =============================================================================


def title_payload(
    title: str | None,
    target: Target = Target.BOTH,
    state: int | None = None,
) -> dict[str, Any]:
    """Payload for setTitle. A ``None`` title restores the user's title."""
    payload: dict[str, Any] = {"target": int(target)}
    if title is not None:
        payload["title"] = title
    if state is not None:
        payload["state"] = state
    return payload


def image_payload(
    image: str | None,
    target: Target = Target.BOTH,
    state: int | None = None,
) -> dict[str, Any]:
    """Payload for setImage. ``image`` is a data URI or an SVG string."""
    payload: dict[str, Any] = {"target": int(target)}
    if image is not None:
        payload["image"] = image
    if state is not None:
        payload["state"] = state
    return payload


def profile_payload(profile: str, page: int | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"profile": profile}
    if page is not None:
        payload["page"] = page
    return payload
