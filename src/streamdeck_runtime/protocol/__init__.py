"""Wire protocol between a plugin and the controller application.

Key concepts:
- Events: controller -> plugin, decoded into typed envelopes by kind
- Commands: plugin -> controller, plain JSON objects
- Registration: the one-time handshake sent right after connecting
"""

from .commands import (
    CommandKey,
    Target,
    build_command,
    encode_command,
    registration_message,
)
from .events import (
    EVENT_MODELS,
    ActionEnvelope,
    AppearEvent,
    AppearPayload,
    ApplicationEvent,
    Coordinates,
    DeviceConnectionEvent,
    DeviceDisconnectionEvent,
    DeviceInfo,
    DeviceSize,
    Envelope,
    EventKey,
    GlobalSettingsEvent,
    InboundEvent,
    KeyEvent,
    KeyPayload,
    PropertyInspectorEvent,
    SendToPluginEvent,
    SettingsEvent,
    SettingsPayload,
    SystemWakeEvent,
    TitleInfo,
    TitleParameters,
    TitleParametersEvent,
    decode_event,
)

__all__ = [
    # Events
    "EVENT_MODELS",
    "ActionEnvelope",
    "AppearEvent",
    "AppearPayload",
    "ApplicationEvent",
    "Coordinates",
    "DeviceConnectionEvent",
    "DeviceDisconnectionEvent",
    "DeviceInfo",
    "DeviceSize",
    "Envelope",
    "EventKey",
    "GlobalSettingsEvent",
    "InboundEvent",
    "KeyEvent",
    "KeyPayload",
    "PropertyInspectorEvent",
    "SendToPluginEvent",
    "SettingsEvent",
    "SettingsPayload",
    "SystemWakeEvent",
    "TitleInfo",
    "TitleParameters",
    "TitleParametersEvent",
    "decode_event",
    # Commands
    "CommandKey",
    "Target",
    "build_command",
    "encode_command",
    "registration_message",
]
