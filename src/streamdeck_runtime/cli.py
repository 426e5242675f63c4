"""Plugin command line.

The controller application launches a plugin executable as:

    plugin -port 28196 -pluginUUID com.example.counter \\
        -registerEvent registerPlugin -info '{"application": {...}, ...}'

``run_plugin`` parses those arguments into a ``PluginConfig`` and runs the
plugin until the controller closes the connection:

    if __name__ == "__main__":
        run_plugin(CounterPlugin)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable, Sequence

import click
from pydantic import ValidationError

from .config import PluginConfig, RegistrationInfo
from .errors import ConnectionFailure
from .plugin import PluginDelegate
from .runtime import Connector, PluginRuntime

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Send all log output to stderr with one handler on the root logger."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stderr_handler)
    root_logger.setLevel(level.upper())


def parse_info(ctx: click.Context, param: click.Parameter, value: str) -> RegistrationInfo:
    """Click callback turning the ``-info`` JSON into a RegistrationInfo."""
    try:
        return RegistrationInfo.from_json(value)
    except ValidationError as e:
        raise click.BadParameter(f"invalid registration info: {e}") from e


def build_command(
    plugin_factory: Callable[[], PluginDelegate],
    connector: Connector | None = None,
) -> click.Command:
    """Build the click command that runs a plugin.

    Args:
        plugin_factory: Creates the plugin delegate, usually the plugin class
        connector: Socket opener passed to the runtime (tests only)
    """

    @click.command()
    @click.option("-port", "port", type=int, required=True, help="Controller WebSocket port")
    @click.option("-pluginUUID", "plugin_uuid", required=True, help="UUID to register with")
    @click.option(
        "-registerEvent", "register_event", required=True, help="Registration event name"
    )
    @click.option(
        "-info",
        "info",
        required=True,
        callback=parse_info,
        help="JSON describing the application and devices",
    )
    @click.option(
        "--log-level",
        default="INFO",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
        help="Log level for stderr output",
    )
    def main(
        port: int,
        plugin_uuid: str,
        register_event: str,
        info: RegistrationInfo,
        log_level: str,
    ) -> None:
        """Run the plugin against the controller application."""
        configure_logging(log_level)

        plugin = plugin_factory()
        config = PluginConfig(
            port=port,
            plugin_uuid=plugin_uuid,
            register_event=register_event,
            info=info,
        )
        logger.info(f"Initializing plugin '{plugin.name}'")
        logger.info(f"Port: {port}, UUID: {plugin_uuid}, Event: {register_event}")
        logger.info(info.describe())

        runtime = PluginRuntime(plugin, config, connector=connector)
        try:
            asyncio.run(_serve(runtime))
        except ConnectionFailure as e:
            logger.error(f"Plugin stopped: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.info("Interrupted")

    return main


async def _serve(runtime: PluginRuntime) -> None:
    try:
        await runtime.run()
    finally:
        await runtime.shutdown()


def run_plugin(
    plugin_factory: Callable[[], PluginDelegate],
    args: Sequence[str] | None = None,
) -> None:
    """Parse the launch arguments and run the plugin until disconnected."""
    build_command(plugin_factory).main(args=list(args) if args is not None else None)
