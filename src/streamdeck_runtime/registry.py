"""Registry of live action instances.

Maps each context identifier to the one ``Action`` instance handling it.
Entries are added on ``willAppear`` and removed on ``willDisappear``.

Not synchronised: only the runtime's dispatch loop mutates it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from .action import Action
from .errors import DuplicateRegistration
from .protocol.events import Coordinates

if TYPE_CHECKING:
    from .runtime import PluginRuntime

logger = logging.getLogger(__name__)


class InstanceRegistry:
    """Live action instances keyed by context.

    Usage:
        registry = InstanceRegistry([IncrementAction, DecrementAction])
        registry.register("ctx1", "com.example.increment", Coordinates(column=0, row=0))
        registry["ctx1"].set_title("1")
    """

    def __init__(
        self,
        action_types: Iterable[type[Action]] = (),
        runtime: PluginRuntime | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            action_types: Action classes the plugin provides
            runtime: Runtime handed to each new instance for sending commands

        Raises:
            ValueError: If two action types declare the same uuid
        """
        self._types: dict[str, type[Action]] = {}
        for action_type in action_types:
            if action_type.uuid in self._types:
                raise ValueError(f"Duplicate action uuid: {action_type.uuid}")
            self._types[action_type.uuid] = action_type
        self._instances: dict[str, Action] = {}
        self._runtime = runtime

    @property
    def action_types(self) -> list[type[Action]]:
        return list(self._types.values())

    def action_type(self, uuid: str) -> type[Action] | None:
        """Look up an action class by its uuid."""
        return self._types.get(uuid)

    def register(
        self,
        context: str,
        action_uuid: str,
        coordinates: Coordinates | None,
        **kwargs: Any,
    ) -> Action | None:
        """Create the instance for a context, unless one is already live.

        A repeated appear for a live context leaves the existing instance
        and its state untouched.

        Args:
            context: Opaque instance identifier from the controller
            action_uuid: Which action type to instantiate
            coordinates: Key position, if the action is on a key
            **kwargs: Extra keyword arguments for the action constructor

        Returns:
            The new instance, or None if nothing was created
        """
        if context in self._instances:
            error = DuplicateRegistration(context)
            logger.warning(f"{type(error).__name__}: {error}")
            return None

        action_type = self._types.get(action_uuid)
        if action_type is None:
            logger.warning(f"No action available with uuid '{action_uuid}'")
            return None

        instance = action_type(context, coordinates, runtime=self._runtime, **kwargs)
        self._instances[context] = instance
        logger.info(f"Initialized a new instance of '{action_uuid}' at {coordinates}")
        return instance

    def remove(self, context: str) -> Action | None:
        """Forget the instance for a context. Unknown contexts are ignored."""
        instance = self._instances.pop(context, None)
        if instance is not None:
            logger.info(f"Removed instance of '{instance.uuid}' ({context})")
        return instance

    def get(self, context: str | None) -> Action | None:
        if context is None:
            return None
        return self._instances.get(context)

    def by_action(self, uuid: str) -> list[Action]:
        """All live instances of one action type."""
        return [i for i in self._instances.values() if i.uuid == uuid]

    def at(self, coordinates: Coordinates) -> list[Action]:
        """All live instances at a key position, across devices."""
        return [i for i in self._instances.values() if i.coordinates == coordinates]

    def clear(self) -> None:
        self._instances.clear()

    def __getitem__(self, context: str) -> Action:
        return self._instances[context]

    def __contains__(self, context: object) -> bool:
        return context in self._instances

    def __iter__(self) -> Iterator[Action]:
        return iter(list(self._instances.values()))

    def __len__(self) -> int:
        return len(self._instances)
