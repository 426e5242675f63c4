"""Plugin-wide delegate.

The delegate is notified of every event the plugin receives, whether or not
an action instance is addressed. ``PluginDelegate`` is the contract the
runtime checks against; ``BasePlugin`` implements all of it as no-ops so a
plugin only overrides what it needs:

    class CounterPlugin(BasePlugin):
        name = "Counter"
        actions = [IncrementAction, DecrementAction]

        async def device_did_connect(self, device, device_info):
            logger.info(f"{device_info.name} connected")
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

from .action import Action
from .protocol.commands import CommandKey, profile_payload
from .protocol.events import (
    AppearPayload,
    DeviceInfo,
    KeyPayload,
    SettingsPayload,
    TitleInfo,
)

if TYPE_CHECKING:
    from .runtime import PluginRuntime

logger = logging.getLogger(__name__)


@runtime_checkable
class PluginDelegate(Protocol):
    """Callbacks every plugin delegate must provide."""

    name: str
    actions: list[type[Action]]

    async def did_receive_settings(
        self, action: str, context: str, device: str, payload: SettingsPayload
    ) -> None: ...

    async def did_receive_global_settings(self, settings: dict[str, str]) -> None: ...

    async def key_down(self, action: str, context: str, device: str, payload: KeyPayload) -> None: ...

    async def key_up(self, action: str, context: str, device: str, payload: KeyPayload) -> None: ...

    async def will_appear(
        self, action: str, context: str, device: str, payload: AppearPayload
    ) -> None: ...

    async def will_disappear(
        self, action: str, context: str, device: str, payload: AppearPayload
    ) -> None: ...

    async def title_parameters_did_change(
        self, action: str, context: str, device: str, info: TitleInfo
    ) -> None: ...

    async def device_did_connect(self, device: str, device_info: DeviceInfo) -> None: ...

    async def device_did_disconnect(self, device: str) -> None: ...

    async def application_did_launch(self, application: str) -> None: ...

    async def application_did_terminate(self, application: str) -> None: ...

    async def system_did_wake_up(self) -> None: ...

    async def property_inspector_did_appear(
        self, action: str, context: str, device: str | None
    ) -> None: ...

    async def property_inspector_did_disappear(
        self, action: str, context: str, device: str | None
    ) -> None: ...

    async def sent_to_plugin(self, action: str, context: str, payload: dict[str, Any]) -> None: ...


class BasePlugin:
    """No-op implementation of ``PluginDelegate``.

    The runtime sets ``runtime`` before dispatching the first event, which
    enables the plugin-level commands below.
    """

    name: ClassVar[str] = "plugin"
    actions: ClassVar[list[type[Action]]] = []

    def __init__(self) -> None:
        self.runtime: PluginRuntime | None = None

    async def did_receive_settings(
        self, action: str, context: str, device: str, payload: SettingsPayload
    ) -> None:
        pass

    async def did_receive_global_settings(self, settings: dict[str, str]) -> None:
        pass

    async def key_down(self, action: str, context: str, device: str, payload: KeyPayload) -> None:
        pass

    async def key_up(self, action: str, context: str, device: str, payload: KeyPayload) -> None:
        pass

    async def will_appear(
        self, action: str, context: str, device: str, payload: AppearPayload
    ) -> None:
        pass

    async def will_disappear(
        self, action: str, context: str, device: str, payload: AppearPayload
    ) -> None:
        pass

    async def title_parameters_did_change(
        self, action: str, context: str, device: str, info: TitleInfo
    ) -> None:
        pass

    async def device_did_connect(self, device: str, device_info: DeviceInfo) -> None:
        pass

    async def device_did_disconnect(self, device: str) -> None:
        pass

    async def application_did_launch(self, application: str) -> None:
        pass

    async def application_did_terminate(self, application: str) -> None:
        pass

    async def system_did_wake_up(self) -> None:
        pass

    async def property_inspector_did_appear(
        self, action: str, context: str, device: str | None
    ) -> None:
        pass

    async def property_inspector_did_disappear(
        self, action: str, context: str, device: str | None
    ) -> None:
        pass

    async def sent_to_plugin(self, action: str, context: str, payload: dict[str, Any]) -> None:
        pass

    # =========================================================================
    # Commands
    # =========================================================================

    def _require_runtime(self) -> PluginRuntime:
        if self.runtime is None:
            raise RuntimeError(f"Plugin {self.name!r} is not attached to a runtime")
        return self.runtime

    def get_global_settings(self) -> asyncio.Task[None] | None:
        """Ask for global settings; answered by ``did_receive_global_settings``."""
        runtime = self._require_runtime()
        return runtime.send_event(CommandKey.GET_GLOBAL_SETTINGS, context=runtime.config.plugin_uuid)

    def set_global_settings(self, settings: dict[str, str]) -> asyncio.Task[None] | None:
        runtime = self._require_runtime()
        return runtime.send_event(
            CommandKey.SET_GLOBAL_SETTINGS,
            context=runtime.config.plugin_uuid,
            payload=settings,
        )

    def open_url(self, url: str) -> asyncio.Task[None] | None:
        """Open a URL in the default browser."""
        return self._require_runtime().send_event(CommandKey.OPEN_URL, payload={"url": url})

    def log_message(self, message: str) -> asyncio.Task[None] | None:
        """Write to the controller application's log file."""
        return self._require_runtime().send_event(
            CommandKey.LOG_MESSAGE, payload={"message": message}
        )

    def switch_to_profile(
        self, device: str, profile: str, page: int | None = None
    ) -> asyncio.Task[None] | None:
        """Switch a device to one of the plugin's preconfigured profiles."""
        runtime = self._require_runtime()
        logger.info(f"Switching {device} to profile '{profile}'")
        return runtime.send_event(
            CommandKey.SWITCH_TO_PROFILE,
            context=runtime.config.plugin_uuid,
            device=device,
            payload=profile_payload(profile, page),
        )
