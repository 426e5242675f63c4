"""Inbound event definitions.

Every message from the controller is a JSON object with an ``event`` key.
The key is decoded first, on its own, because the shape of the rest of the
message depends on it:

    {"event": "keyDown", "action": "com.example.counter", "context": "...",
     "device": "...", "payload": {"settings": {}, "coordinates": {...}, ...}}

Field names on the wire are camelCase; the models expose snake_case
attributes and accept either form.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import MalformedEnvelope


class EventKey(str, Enum):
    """All event kinds the controller sends to a plugin."""

    # Action instance events
    DID_RECEIVE_SETTINGS = "didReceiveSettings"
    KEY_DOWN = "keyDown"
    KEY_UP = "keyUp"
    WILL_APPEAR = "willAppear"
    WILL_DISAPPEAR = "willDisappear"
    TITLE_PARAMETERS_DID_CHANGE = "titleParametersDidChange"

    # Property inspector
    PROPERTY_INSPECTOR_DID_APPEAR = "propertyInspectorDidAppear"
    PROPERTY_INSPECTOR_DID_DISAPPEAR = "propertyInspectorDidDisappear"
    SEND_TO_PLUGIN = "sendToPlugin"

    # Plugin-wide events
    DID_RECEIVE_GLOBAL_SETTINGS = "didReceiveGlobalSettings"
    DEVICE_DID_CONNECT = "deviceDidConnect"
    DEVICE_DID_DISCONNECT = "deviceDidDisconnect"
    APPLICATION_DID_LAUNCH = "applicationDidLaunch"
    APPLICATION_DID_TERMINATE = "applicationDidTerminate"
    SYSTEM_DID_WAKE_UP = "systemDidWakeUp"


class WireModel(BaseModel):
    """Base model mapping snake_case attributes to camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump using wire names, leaving out unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Coordinates(WireModel):
    """Position of a key on a device."""

    model_config = ConfigDict(frozen=True)

    column: int
    row: int


class DeviceSize(WireModel):
    """Number of key columns and rows on a device."""

    columns: int
    rows: int


class DeviceInfo(WireModel):
    """Description of a connected device."""

    name: str
    type: int
    size: DeviceSize


# =============================================================================
# Payloads
# =============================================================================


class AppearPayload(WireModel):
    """Payload of ``willAppear`` and ``willDisappear``."""

    settings: dict[str, str] = Field(default_factory=dict)
    coordinates: Coordinates
    # Only set when the action has multiple states in its manifest
    state: int | None = None
    is_in_multi_action: bool = False


class KeyPayload(AppearPayload):
    """Payload of ``keyDown`` and ``keyUp``."""

    # Set when triggered from a Multi Action with a specific state
    user_desired_state: Literal[0, 1] | None = None


class SettingsPayload(AppearPayload):
    """Payload of ``didReceiveSettings``."""


class GlobalSettingsPayload(WireModel):
    settings: dict[str, str] = Field(default_factory=dict)


class TitleParameters(WireModel):
    """How the controller renders an instance's title."""

    font_family: str = ""
    font_size: int = 12
    font_style: str = ""
    font_underline: bool = False
    show_title: bool = True
    title_alignment: str = "bottom"
    title_color: str = "#ffffff"


class TitleInfo(WireModel):
    """Payload of ``titleParametersDidChange``."""

    coordinates: Coordinates
    settings: dict[str, str] = Field(default_factory=dict)
    state: int | None = None
    title: str = ""
    title_parameters: TitleParameters


class ApplicationPayload(WireModel):
    application: str


# =============================================================================
# Envelopes
# =============================================================================


class Envelope(WireModel):
    """Minimal envelope exposing only the event kind.

    Decoding against this model is always the first step, independent of
    the kind-specific payload.
    """

    event: EventKey


class ActionEnvelope(Envelope):
    """An event addressed to one action instance."""

    # The action's UUID as declared in the manifest
    action: str
    # Opaque value identifying the instance
    context: str
    # Opaque value identifying the device
    device: str


class AppearEvent(ActionEnvelope):
    payload: AppearPayload


class KeyEvent(ActionEnvelope):
    payload: KeyPayload


class SettingsEvent(ActionEnvelope):
    payload: SettingsPayload


class TitleParametersEvent(ActionEnvelope):
    payload: TitleInfo


class GlobalSettingsEvent(Envelope):
    payload: GlobalSettingsPayload


class DeviceConnectionEvent(Envelope):
    device: str
    device_info: DeviceInfo


class DeviceDisconnectionEvent(Envelope):
    device: str


class ApplicationEvent(Envelope):
    payload: ApplicationPayload


class SystemWakeEvent(Envelope):
    pass


class PropertyInspectorEvent(Envelope):
    action: str
    context: str
    device: str | None = None
    payload: dict[str, Any] | None = None


class SendToPluginEvent(Envelope):
    """Data forwarded from the property inspector."""

    action: str
    context: str
    device: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


InboundEvent = (
    AppearEvent
    | KeyEvent
    | SettingsEvent
    | TitleParametersEvent
    | GlobalSettingsEvent
    | DeviceConnectionEvent
    | DeviceDisconnectionEvent
    | ApplicationEvent
    | SystemWakeEvent
    | PropertyInspectorEvent
    | SendToPluginEvent
)

EVENT_MODELS: dict[EventKey, type[Envelope]] = {
    EventKey.DID_RECEIVE_SETTINGS: SettingsEvent,
    EventKey.KEY_DOWN: KeyEvent,
    EventKey.KEY_UP: KeyEvent,
    EventKey.WILL_APPEAR: AppearEvent,
    EventKey.WILL_DISAPPEAR: AppearEvent,
    EventKey.TITLE_PARAMETERS_DID_CHANGE: TitleParametersEvent,
    EventKey.PROPERTY_INSPECTOR_DID_APPEAR: PropertyInspectorEvent,
    EventKey.PROPERTY_INSPECTOR_DID_DISAPPEAR: PropertyInspectorEvent,
    EventKey.SEND_TO_PLUGIN: SendToPluginEvent,
    EventKey.DID_RECEIVE_GLOBAL_SETTINGS: GlobalSettingsEvent,
    EventKey.DEVICE_DID_CONNECT: DeviceConnectionEvent,
    EventKey.DEVICE_DID_DISCONNECT: DeviceDisconnectionEvent,
    EventKey.APPLICATION_DID_LAUNCH: ApplicationEvent,
    EventKey.APPLICATION_DID_TERMINATE: ApplicationEvent,
    EventKey.SYSTEM_DID_WAKE_UP: SystemWakeEvent,
}


def decode_event(raw: str | bytes) -> InboundEvent:
    """Decode one inbound message into its kind-specific envelope.

    Args:
        raw: The message as received, text or UTF-8 bytes

    Returns:
        The typed envelope for the message's event kind

    Raises:
        MalformedEnvelope: If the message is not JSON, has no recognised
            ``event`` key, or does not match the schema for its kind
    """
    # Deep nesting raises RecursionError rather than a decode error
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise MalformedEnvelope(f"Invalid JSON: {e}", raw) from e

    if not isinstance(data, dict):
        raise MalformedEnvelope(f"Expected a JSON object, got {type(data).__name__}", raw)

    try:
        key = Envelope.model_validate(data).event
    except ValidationError as e:
        raise MalformedEnvelope(f"Unrecognised event kind: {data.get('event')!r}", raw) from e

    try:
        return EVENT_MODELS[key].model_validate(data)  # type: ignore[return-value]
    except ValidationError as e:
        raise MalformedEnvelope(f"Invalid {key.value} payload: {e}", raw) from e
