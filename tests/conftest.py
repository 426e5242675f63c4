"""Pytest configuration and shared fixtures.

Provides an in-memory socket standing in for the controller WebSocket,
recording plugin/action classes, and a builder for inbound envelopes.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from streamdeck_runtime import Action, BasePlugin, PluginConfig, PluginRuntime

# =============================================================================
# Fake socket
# =============================================================================


class FakeSocket:
    """In-memory stand-in for a websockets client connection.

    Inbound messages are fed with ``feed()``; ``recv()`` returns them in
    order. ``close_clean()`` and ``fail()`` make the next ``recv()`` raise
    the matching websockets exception.
    """

    def __init__(self) -> None:
        self.inbound: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[str | bytes] = []
        self.closed = False
        self.recv_calls = 0
        self.fail_sends = False

    def feed(self, *messages: str | bytes) -> None:
        for message in messages:
            self.inbound.put_nowait(message)

    def close_clean(self) -> None:
        self.inbound.put_nowait(ConnectionClosedOK(None, None))

    def fail(self) -> None:
        self.inbound.put_nowait(ConnectionClosedError(None, None))

    async def recv(self) -> str | bytes:
        self.recv_calls += 1
        item = await self.inbound.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, message: str | bytes) -> None:
        if self.fail_sends or self.closed:
            raise ConnectionClosedError(None, None)
        self.sent.append(message)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.close_clean()

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(message) for message in self.sent]


# =============================================================================
# Recording handlers
# =============================================================================


class RecordingAction(Action):
    """Action that records every callback it receives."""

    uuid = "com.example.recording"
    name = "Recording"

    def __init__(self, context, coordinates, **kwargs):
        super().__init__(context, coordinates, **kwargs)
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        # Whether this instance was registered when each callback ran
        self.registered_during: list[tuple[str, bool]] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.runtime is not None:
            self.registered_during.append((name, self.context in self.runtime.registry))

    async def key_down(self, device, payload):
        self._record("key_down", device, payload)

    async def key_up(self, device, payload):
        self._record("key_up", device, payload)

    async def will_appear(self, device, payload):
        self._record("will_appear", device, payload)

    async def will_disappear(self, device, payload):
        self._record("will_disappear", device, payload)

    async def did_receive_settings(self, device, payload):
        self._record("did_receive_settings", device, payload)

    async def title_parameters_did_change(self, device, info):
        self._record("title_parameters_did_change", device, info)

    async def property_inspector_did_appear(self, device):
        self._record("property_inspector_did_appear", device)

    async def property_inspector_did_disappear(self, device):
        self._record("property_inspector_did_disappear", device)

    async def sent_to_plugin(self, payload):
        self._record("sent_to_plugin", payload)


class OtherAction(Action):
    """Second action type with default no-op callbacks."""

    uuid = "com.example.other"
    name = "Other"


class RecordingPlugin(BasePlugin):
    """Plugin delegate that records every callback it receives."""

    name = "Recording Plugin"
    actions = [RecordingAction, OtherAction]

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def did_receive_settings(self, action, context, device, payload):
        self.calls.append(("did_receive_settings", (action, context, device, payload)))

    async def did_receive_global_settings(self, settings):
        self.calls.append(("did_receive_global_settings", (settings,)))

    async def key_down(self, action, context, device, payload):
        self.calls.append(("key_down", (action, context, device, payload)))

    async def key_up(self, action, context, device, payload):
        self.calls.append(("key_up", (action, context, device, payload)))

    async def will_appear(self, action, context, device, payload):
        self.calls.append(("will_appear", (action, context, device, payload)))

    async def will_disappear(self, action, context, device, payload):
        self.calls.append(("will_disappear", (action, context, device, payload)))

    async def title_parameters_did_change(self, action, context, device, info):
        self.calls.append(("title_parameters_did_change", (action, context, device, info)))

    async def device_did_connect(self, device, device_info):
        self.calls.append(("device_did_connect", (device, device_info)))

    async def device_did_disconnect(self, device):
        self.calls.append(("device_did_disconnect", (device,)))

    async def application_did_launch(self, application):
        self.calls.append(("application_did_launch", (application,)))

    async def application_did_terminate(self, application):
        self.calls.append(("application_did_terminate", (application,)))

    async def system_did_wake_up(self):
        self.calls.append(("system_did_wake_up", ()))

    async def property_inspector_did_appear(self, action, context, device):
        self.calls.append(("property_inspector_did_appear", (action, context, device)))

    async def property_inspector_did_disappear(self, action, context, device):
        self.calls.append(("property_inspector_did_disappear", (action, context, device)))

    async def sent_to_plugin(self, action, context, payload):
        self.calls.append(("sent_to_plugin", (action, context, payload)))


# =============================================================================
# Envelope builders
# =============================================================================

ACTION_EVENTS = {
    "willAppear",
    "willDisappear",
    "keyDown",
    "keyUp",
    "didReceiveSettings",
}


def build_envelope(
    event: str,
    context: str = "ctx1",
    action: str = RecordingAction.uuid,
    device: str = "device1",
    column: int = 3,
    row: int = 1,
    settings: dict[str, str] | None = None,
    **payload_extra: Any,
) -> dict[str, Any]:
    """Build an inbound action envelope as the controller would send it."""
    if event not in ACTION_EVENTS:
        raise ValueError(f"Not an action event: {event}")
    payload: dict[str, Any] = {
        "settings": settings or {},
        "coordinates": {"column": column, "row": row},
        "isInMultiAction": False,
    }
    payload.update(payload_extra)
    return {
        "event": event,
        "action": action,
        "context": context,
        "device": device,
        "payload": payload,
    }


REGISTRATION_INFO = {
    "application": {
        "font": ".AppleSystemUIFont",
        "language": "en",
        "platform": "mac",
        "platformVersion": "11.4.0",
        "version": "5.0.0.14247",
    },
    "plugin": {"uuid": "com.elgato.counter", "version": "1.4"},
    "devicePixelRatio": 2,
    "colors": {
        "buttonPressedBackgroundColor": "#303030FF",
        "highlightColor": "#F7821BFF",
    },
    "devices": [
        {
            "id": "55F16B35884A859CCE4FFA1FC8D3DE5B",
            "name": "Device Name",
            "size": {"columns": 5, "rows": 3},
            "type": 0,
        },
        {
            "id": "B8F04425B95855CF417199BCB97CD2BB",
            "name": "Another Device",
            "size": {"columns": 3, "rows": 2},
            "type": 1,
        },
    ],
}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def envelope():
    """Builder for action envelopes as dicts."""
    return build_envelope


@pytest.fixture
def message():
    """Builder for action envelopes as JSON text."""

    def _message(event: str, **kwargs: Any) -> str:
        return json.dumps(build_envelope(event, **kwargs))

    return _message


@pytest.fixture
def registration_info() -> dict[str, Any]:
    return json.loads(json.dumps(REGISTRATION_INFO))


@pytest.fixture
def fake_socket() -> FakeSocket:
    return FakeSocket()


@pytest.fixture
def config() -> PluginConfig:
    return PluginConfig(
        port=12345,
        plugin_uuid="com.example.plugin",
        register_event="registerPlugin",
    )


@pytest.fixture
def plugin() -> RecordingPlugin:
    return RecordingPlugin()


@pytest.fixture
def runtime(plugin: RecordingPlugin, config: PluginConfig, fake_socket: FakeSocket):
    """Runtime wired to the fake socket; not yet connected."""
    connected_urls: list[str] = []

    async def connector(url: str) -> FakeSocket:
        connected_urls.append(url)
        return fake_socket

    rt = PluginRuntime(plugin, config, connector=connector)
    rt.connected_urls = connected_urls  # type: ignore[attr-defined]
    return rt
