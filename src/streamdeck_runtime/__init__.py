"""Stream Deck plugin runtime.

Connects a Python plugin to the controller application over its local
WebSocket, decodes the events it sends and routes them to per-key action
instances and a plugin-wide delegate.

Usage:
    from streamdeck_runtime import Action, BasePlugin, run_plugin

    class Increment(Action):
        uuid = "com.example.counter.increment"

    class CounterPlugin(BasePlugin):
        name = "Counter"
        actions = [Increment]

    run_plugin(CounterPlugin)
"""

from .action import Action, ActionState, TitleAlignment
from .cli import run_plugin
from .config import PluginConfig, RegistrationInfo
from .errors import (
    ConnectionFailure,
    DuplicateRegistration,
    MalformedEnvelope,
    StreamDeckError,
    UnknownTargetInstance,
    UnserializableCommand,
)
from .plugin import BasePlugin, PluginDelegate
from .protocol import CommandKey, Coordinates, EventKey, Target
from .registry import InstanceRegistry
from .runtime import PluginRuntime, RuntimeState

__version__ = "0.1.0"

__all__ = [
    # Handlers
    "Action",
    "ActionState",
    "BasePlugin",
    "PluginDelegate",
    "TitleAlignment",
    # Runtime
    "InstanceRegistry",
    "PluginConfig",
    "PluginRuntime",
    "RegistrationInfo",
    "RuntimeState",
    "run_plugin",
    # Protocol
    "CommandKey",
    "Coordinates",
    "EventKey",
    "Target",
    # Errors
    "ConnectionFailure",
    "DuplicateRegistration",
    "MalformedEnvelope",
    "StreamDeckError",
    "UnknownTargetInstance",
    "UnserializableCommand",
]
