"""Plugin runtime - connection lifecycle and event dispatch.

Owns the WebSocket to the controller, performs the registration handshake,
and runs the receive loop that decodes each envelope and routes it to the
addressed action instance and to the plugin delegate.

Lifecycle:
    DISCONNECTED -> CONNECTING -> REGISTERED -> RUNNING -> CLOSED

Usage:
    runtime = PluginRuntime(CounterPlugin(), config)
    await runtime.run()  # connects, registers, dispatches until closed
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from .action import Action
from .config import PluginConfig
from .errors import (
    ConnectionFailure,
    MalformedEnvelope,
    UnknownTargetInstance,
    UnserializableCommand,
)
from .plugin import BasePlugin, PluginDelegate
from .protocol.commands import (
    CommandKey,
    build_command,
    encode_command,
    registration_message,
)
from .protocol.events import (
    AppearEvent,
    ApplicationEvent,
    DeviceConnectionEvent,
    DeviceDisconnectionEvent,
    EventKey,
    GlobalSettingsEvent,
    InboundEvent,
    KeyEvent,
    PropertyInspectorEvent,
    SendToPluginEvent,
    SettingsEvent,
    SystemWakeEvent,
    TitleParametersEvent,
    decode_event,
)
from .registry import InstanceRegistry
from .transport.stream import Message, MessageChannel, Socket, SocketStream

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Socket]]


class RuntimeState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    REGISTERED = "registered"
    RUNNING = "running"
    CLOSED = "closed"


async def websocket_connect(url: str) -> Socket:
    """Open the controller WebSocket."""
    return await websockets.connect(url)


class PluginRuntime:
    """Runs one plugin against one controller connection.

    The runtime is created explicitly and passed to whatever needs it:
    action instances receive it on construction and ``BasePlugin``
    delegates get it assigned, so both can send commands.

    Dispatch is sequential: one envelope is fully handled before the next
    is decoded. Outbound sends run as independent tasks.
    """

    def __init__(
        self,
        plugin: PluginDelegate,
        config: PluginConfig,
        connector: Connector | None = None,
    ) -> None:
        """Initialize the runtime.

        Args:
            plugin: The plugin-wide delegate; its ``actions`` populate the registry
            config: Port, plugin uuid, registration event and info blob
            connector: Opens the socket for a URL (default: websockets.connect)

        Raises:
            TypeError: If plugin does not implement PluginDelegate
        """
        if not isinstance(plugin, PluginDelegate):
            raise TypeError(f"{type(plugin).__name__} does not implement PluginDelegate")

        self.plugin = plugin
        self.config = config
        self.registry = InstanceRegistry(plugin.actions, runtime=self)
        self._connector = connector or websocket_connect
        self._state = RuntimeState.DISCONNECTED
        self._stream: SocketStream | None = None
        self._channel: MessageChannel | None = None
        self._pending_sends: set[asyncio.Task[None]] = set()

        if isinstance(plugin, BasePlugin):
            plugin.runtime = self

    @property
    def state(self) -> RuntimeState:
        """Current connection state."""
        return self._state

    @property
    def instances(self) -> dict[str, Action]:
        """Snapshot of live instances by context."""
        return {instance.context: instance for instance in self.registry}

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Open the WebSocket to the controller.

        Raises:
            ConnectionFailure: If the socket cannot be opened
            RuntimeError: If already connected or closed
        """
        if self._state != RuntimeState.DISCONNECTED:
            raise RuntimeError(f"Cannot connect from state {self._state.value}")

        self._state = RuntimeState.CONNECTING
        logger.info(f"Connecting to {self.config.url}")
        try:
            socket = await self._connector(self.config.url)
        except (OSError, WebSocketException) as e:
            self._state = RuntimeState.CLOSED
            raise ConnectionFailure(f"Failed to connect to {self.config.url}: {e}") from e

        self._stream = SocketStream(socket)

    async def register_plugin(self) -> None:
        """Send the registration handshake.

        Raises:
            UnserializableCommand: If the registration parameters are not JSON-safe
            ConnectionFailure: If the send fails
        """
        if self._state != RuntimeState.CONNECTING or self._stream is None:
            raise RuntimeError(f"Cannot register from state {self._state.value}")

        try:
            data = encode_command(
                registration_message(self.config.register_event, self.config.plugin_uuid)
            )
        except UnserializableCommand as e:
            logger.error(f"{type(e).__name__}: {e}")
            await self._abort()
            raise

        logger.info("Sending registration event")
        try:
            await self._stream.send(data)
        except ConnectionFailure:
            logger.error(f"Failed to send {self.config.register_event} event")
            await self._abort()
            raise
        self._state = RuntimeState.REGISTERED

    async def _abort(self) -> None:
        """Close the socket after a failed handshake."""
        self._state = RuntimeState.CLOSED
        if self._stream is not None:
            await self._stream.close()

    async def run(self) -> None:
        """Connect, register and dispatch events until the connection ends.

        Returns normally when the controller closes the socket cleanly.

        Raises:
            ConnectionFailure: If the connection is lost abnormally
        """
        if self._state == RuntimeState.DISCONNECTED:
            await self.connect()
        if self._state == RuntimeState.CONNECTING:
            await self.register_plugin()
        if self._state != RuntimeState.REGISTERED or self._stream is None:
            raise RuntimeError(f"Cannot run from state {self._state.value}")

        self._state = RuntimeState.RUNNING
        self._channel = self._stream.channel(self.config.queue_size)
        logger.info(f"Plugin '{self.plugin.name}' running")

        try:
            async for message in self._channel:
                await self.handle_message(message)
        except ConnectionFailure as e:
            logger.error(f"Connection lost: {e}")
            raise
        finally:
            self._state = RuntimeState.CLOSED
            logger.info("Receive loop stopped")

    async def shutdown(self) -> None:
        """Wait for pending sends, then close the connection."""
        if self._pending_sends:
            await asyncio.gather(*self._pending_sends, return_exceptions=True)
        if self._channel is not None:
            await self._channel.aclose()
        if self._stream is not None:
            await self._stream.close()
        self.registry.clear()
        self._state = RuntimeState.CLOSED

    async def __aenter__(self) -> PluginRuntime:
        await self.connect()
        await self.register_plugin()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.shutdown()

    # =========================================================================
    # Outbound
    # =========================================================================

    def send_event(
        self,
        kind: CommandKey | str,
        action: str | None = None,
        context: str | None = None,
        payload: dict[str, Any] | None = None,
        device: str | None = None,
    ) -> asyncio.Task[None] | None:
        """Send a command to the controller without waiting for it.

        Unserializable commands are logged and dropped. Send failures are
        logged by the returned task, never retried.

        Returns:
            The send task, or None if nothing was sent
        """
        name = kind.value if isinstance(kind, CommandKey) else kind
        try:
            data = encode_command(build_command(kind, action, context, payload, device))
        except UnserializableCommand as e:
            logger.error(f"{type(e).__name__}: {e}")
            return None

        if self._stream is None:
            logger.error(f"Cannot send {name}: not connected")
            return None

        task = asyncio.create_task(self._send(self._stream, name, data))
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)
        return task

    async def _send(self, stream: SocketStream, name: str, data: Message) -> None:
        try:
            await stream.send(data)
        except ConnectionFailure as e:
            logger.error(f"Failed to send {name} event: {e}")
        else:
            logger.debug(f"Completed {name}")

    # =========================================================================
    # Inbound
    # =========================================================================

    async def handle_message(self, raw: Message) -> None:
        """Decode and dispatch one inbound message.

        Malformed messages are logged and dropped.
        """
        try:
            event = decode_event(raw)
        except MalformedEnvelope as e:
            logger.warning(f"Dropping message: {type(e).__name__}: {e}")
            return
        await self.dispatch(event)

    async def dispatch(self, event: InboundEvent) -> None:
        """Route a decoded event to its instance and to the delegate.

        Appear events register the instance before any callback runs;
        disappear events remove it after all callbacks have run. A missing
        instance skips the instance callback but never the delegate.
        """
        plugin = self.plugin

        match event:
            case AppearEvent(event=EventKey.WILL_APPEAR):
                self.registry.register(event.context, event.action, event.payload.coordinates)
                if (instance := self._target(event.context)) is not None:
                    await self._call(instance.will_appear, event.device, event.payload)
                await self._call(
                    plugin.will_appear, event.action, event.context, event.device, event.payload
                )

            case AppearEvent(event=EventKey.WILL_DISAPPEAR):
                if (instance := self._target(event.context)) is not None:
                    await self._call(instance.will_disappear, event.device, event.payload)
                await self._call(
                    plugin.will_disappear, event.action, event.context, event.device, event.payload
                )
                self.registry.remove(event.context)

            case KeyEvent(event=EventKey.KEY_DOWN):
                logger.debug(f"Forwarding {event.event.value} to {event.context}")
                if (instance := self._target(event.context)) is not None:
                    await self._call(instance.key_down, event.device, event.payload)
                await self._call(
                    plugin.key_down, event.action, event.context, event.device, event.payload
                )

            case KeyEvent(event=EventKey.KEY_UP):
                logger.debug(f"Forwarding {event.event.value} to {event.context}")
                if (instance := self._target(event.context)) is not None:
                    await self._call(instance.key_up, event.device, event.payload)
                await self._call(
                    plugin.key_up, event.action, event.context, event.device, event.payload
                )

            case SettingsEvent():
                logger.debug(f"Forwarding {event.event.value} to {event.context}")
                if (instance := self._target(event.context)) is not None:
                    await self._call(instance.did_receive_settings, event.device, event.payload)
                await self._call(
                    plugin.did_receive_settings,
                    event.action,
                    event.context,
                    event.device,
                    event.payload,
                )

            case TitleParametersEvent():
                logger.debug(f"Forwarding {event.event.value} to {event.context}")
                if (instance := self._target(event.context)) is not None:
                    await self._call(
                        instance.title_parameters_did_change, event.device, event.payload
                    )
                await self._call(
                    plugin.title_parameters_did_change,
                    event.action,
                    event.context,
                    event.device,
                    event.payload,
                )

            case PropertyInspectorEvent(event=EventKey.PROPERTY_INSPECTOR_DID_APPEAR):
                logger.debug(f"Forwarding {event.event.value} to {event.context}")
                if (instance := self._target(event.context)) is not None:
                    await self._call(instance.property_inspector_did_appear, event.device)
                await self._call(
                    plugin.property_inspector_did_appear, event.action, event.context, event.device
                )

            case PropertyInspectorEvent(event=EventKey.PROPERTY_INSPECTOR_DID_DISAPPEAR):
                logger.debug(f"Forwarding {event.event.value} to {event.context}")
                if (instance := self._target(event.context)) is not None:
                    await self._call(instance.property_inspector_did_disappear, event.device)
                await self._call(
                    plugin.property_inspector_did_disappear,
                    event.action,
                    event.context,
                    event.device,
                )

            case SendToPluginEvent():
                logger.debug(f"Forwarding {event.event.value} to {event.context}")
                if (instance := self._target(event.context)) is not None:
                    await self._call(instance.sent_to_plugin, event.payload)
                await self._call(plugin.sent_to_plugin, event.action, event.context, event.payload)

            case GlobalSettingsEvent():
                logger.debug("Forwarding didReceiveGlobalSettings to plugin")
                await self._call(plugin.did_receive_global_settings, event.payload.settings)

            case DeviceConnectionEvent():
                logger.debug(f"Forwarding deviceDidConnect for {event.device} to plugin")
                await self._call(plugin.device_did_connect, event.device, event.device_info)

            case DeviceDisconnectionEvent():
                logger.debug(f"Forwarding deviceDidDisconnect for {event.device} to plugin")
                await self._call(plugin.device_did_disconnect, event.device)

            case ApplicationEvent(event=EventKey.APPLICATION_DID_LAUNCH):
                await self._call(plugin.application_did_launch, event.payload.application)

            case ApplicationEvent(event=EventKey.APPLICATION_DID_TERMINATE):
                await self._call(plugin.application_did_terminate, event.payload.application)

            case SystemWakeEvent():
                await self._call(plugin.system_did_wake_up)

            case _:
                logger.warning(f"No dispatch rule for {event.event.value}")

    def _target(self, context: str) -> Action | None:
        """Resolve the addressed instance, logging when there is none."""
        instance = self.registry.get(context)
        if instance is None:
            error = UnknownTargetInstance(context)
            logger.warning(f"{type(error).__name__}: {error}")
        return instance

    async def _call(self, callback: Callable[..., Awaitable[None]], *args: Any) -> None:
        """Await one handler callback, containing any error it raises."""
        try:
            await callback(*args)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Error in {getattr(callback, '__qualname__', callback)}")
