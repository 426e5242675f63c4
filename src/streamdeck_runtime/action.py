"""Action base class.

An action is the per-key handler. The controller creates one instance for
every key showing the action, identified by an opaque context string, and
the runtime routes that key's events to it.

Subclasses declare a unique ``uuid`` matching the manifest and override
only the callbacks they care about:

    class Counter(Action):
        uuid = "com.example.counter.increment"
        name = "Increment"

        async def key_down(self, device, payload):
            self.count += 1
            self.set_title(str(self.count))
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from .protocol.commands import (
    CommandKey,
    Target,
    image_payload,
    title_payload,
)
from .protocol.events import (
    AppearPayload,
    Coordinates,
    KeyPayload,
    SettingsPayload,
    TitleInfo,
    WireModel,
)

if TYPE_CHECKING:
    from .runtime import PluginRuntime


class TitleAlignment(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class ActionState(WireModel):
    """Display metadata for one state of an action."""

    image: str
    name: str | None = None
    title: str | None = None
    show_title: bool | None = None
    title_color: str | None = None
    title_alignment: TitleAlignment | None = None
    font_size: int | None = None


class Action:
    """Base class for action handlers.

    Every callback is a no-op by default.
    """

    # Identity and display metadata
    uuid: ClassVar[str]
    name: ClassVar[str] = ""
    icon: ClassVar[str] = ""
    states: ClassVar[list[ActionState]] = []
    tooltip: ClassVar[str | None] = None
    property_inspector_path: ClassVar[str | None] = None
    supported_in_multi_actions: ClassVar[bool | None] = None
    visible_in_actions_list: ClassVar[bool | None] = None

    def __init__(
        self,
        context: str,
        coordinates: Coordinates | None,
        *,
        runtime: PluginRuntime | None = None,
    ) -> None:
        self.context = context
        self.coordinates = coordinates
        self.runtime = runtime

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Abstract intermediates may leave uuid unset; concrete actions must not
        if "uuid" in cls.__dict__ and not cls.uuid:
            raise TypeError(f"{cls.__name__}.uuid must not be empty")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(context={self.context!r}, coordinates={self.coordinates!r})"

    @classmethod
    def metadata(cls) -> dict[str, Any]:
        """Static description of the action, in manifest field names."""
        data: dict[str, Any] = {
            "UUID": cls.uuid,
            "Name": cls.name,
            "Icon": cls.icon,
            "States": [state.to_wire() for state in cls.states],
        }
        optional = {
            "Tooltip": cls.tooltip,
            "PropertyInspectorPath": cls.property_inspector_path,
            "SupportedInMultiActions": cls.supported_in_multi_actions,
            "VisibleInActionsList": cls.visible_in_actions_list,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    # =========================================================================
    # Event callbacks
    # =========================================================================

    async def key_down(self, device: str, payload: KeyPayload) -> None:
        """The user pressed the key."""

    async def key_up(self, device: str, payload: KeyPayload) -> None:
        """The user released the key."""

    async def will_appear(self, device: str, payload: AppearPayload) -> None:
        """The instance became visible. Called right after construction."""

    async def will_disappear(self, device: str, payload: AppearPayload) -> None:
        """The instance is going away. Still registered during this call."""

    async def did_receive_settings(self, device: str, payload: SettingsPayload) -> None:
        """Settings arrived, usually in answer to ``get_settings()``."""

    async def title_parameters_did_change(self, device: str, info: TitleInfo) -> None:
        """The user changed the title or its formatting."""

    async def property_inspector_did_appear(self, device: str | None) -> None:
        pass

    async def property_inspector_did_disappear(self, device: str | None) -> None:
        pass

    async def sent_to_plugin(self, payload: dict[str, Any]) -> None:
        """The property inspector sent data to the plugin."""

    # =========================================================================
    # Commands
    # =========================================================================

    def _send(
        self, kind: CommandKey, payload: dict[str, Any] | None = None
    ) -> asyncio.Task[None] | None:
        if self.runtime is None:
            raise RuntimeError(f"{self!r} is not attached to a runtime")
        return self.runtime.send_event(kind, context=self.context, payload=payload)

    def set_settings(self, settings: dict[str, str]) -> asyncio.Task[None] | None:
        """Persist settings for this instance."""
        return self._send(CommandKey.SET_SETTINGS, settings)

    def get_settings(self) -> asyncio.Task[None] | None:
        """Ask for this instance's settings; answered by ``did_receive_settings``."""
        return self._send(CommandKey.GET_SETTINGS)

    def set_title(
        self,
        title: str | None,
        target: Target = Target.BOTH,
        state: int | None = None,
    ) -> asyncio.Task[None] | None:
        return self._send(CommandKey.SET_TITLE, title_payload(title, target, state))

    def set_image(
        self,
        image: str | None,
        target: Target = Target.BOTH,
        state: int | None = None,
    ) -> asyncio.Task[None] | None:
        return self._send(CommandKey.SET_IMAGE, image_payload(image, target, state))

    def show_alert(self) -> asyncio.Task[None] | None:
        """Flash the alert icon on the key."""
        return self._send(CommandKey.SHOW_ALERT)

    def show_ok(self) -> asyncio.Task[None] | None:
        """Flash the checkmark on the key."""
        return self._send(CommandKey.SHOW_OK)

    def set_state(self, state: int) -> asyncio.Task[None] | None:
        return self._send(CommandKey.SET_STATE, {"state": state})

    def send_to_property_inspector(self, payload: dict[str, Any]) -> asyncio.Task[None] | None:
        if self.runtime is None:
            raise RuntimeError(f"{self!r} is not attached to a runtime")
        return self.runtime.send_event(
            CommandKey.SEND_TO_PROPERTY_INSPECTOR,
            action=self.uuid,
            context=self.context,
            payload=payload,
        )
