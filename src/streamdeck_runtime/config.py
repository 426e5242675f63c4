"""Runtime configuration.

The controller launches a plugin with four arguments: the WebSocket port,
the plugin UUID, the registration event name and a JSON ``info`` blob
describing the application and its devices. ``PluginConfig`` carries these
into the runtime.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import Field

from .protocol.events import DeviceInfo, WireModel


class ApplicationInfo(WireModel):
    """The controller application's environment."""

    font: str = ""
    language: str = "en"
    platform: str = ""
    platform_version: str = ""
    version: str = ""


class PluginInfo(WireModel):
    uuid: str = ""
    version: str = ""


class RegisteredDevice(DeviceInfo):
    """A device known to the application at launch."""

    id: str


class RegistrationInfo(WireModel):
    """Parsed ``-info`` argument."""

    application: ApplicationInfo = Field(default_factory=ApplicationInfo)
    plugin: PluginInfo = Field(default_factory=PluginInfo)
    device_pixel_ratio: int = 1
    colors: dict[str, str] = Field(default_factory=dict)
    devices: list[RegisteredDevice] = Field(default_factory=list)

    @classmethod
    def from_json(cls, text: str) -> RegistrationInfo:
        """Parse the info blob passed on the command line."""
        return cls.model_validate_json(text)

    def device(self, device_id: str) -> RegisteredDevice | None:
        """Look up a device by its identifier."""
        return next((d for d in self.devices if d.id == device_id), None)

    def describe(self) -> str:
        """One-line summary for startup logging."""
        return (
            f"{self.application.platform} {self.application.platform_version}, "
            f"app {self.application.version}, {len(self.devices)} device(s)"
        )


@dataclass
class PluginConfig:
    """Connection and registration parameters."""

    # Supplied by the controller on launch
    port: int
    plugin_uuid: str
    register_event: str
    info: RegistrationInfo = field(default_factory=RegistrationInfo)

    # Connection settings
    host: str = "localhost"

    # Inbound messages buffered ahead of dispatch
    queue_size: int = 16

    @property
    def url(self) -> str:
        """WebSocket URL of the controller."""
        return f"ws://{self.host}:{self.port}"
