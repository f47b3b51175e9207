"""Editor commands and the dispatcher that routes them to handlers.

Commands are plain objects, so senders never agree on string event names.
Any number of handlers may subscribe to a command type; every one of them
runs, in subscription order.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from archflow.domain.errors import ValidationError


@dataclass(frozen=True)
class Command:
    """Base class for editor commands."""


@dataclass(frozen=True)
class CreateNode(Command):
    entity_type: str
    position: Optional[Dict[str, float]] = None
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ImportFlow(Command):
    payload: Any


@dataclass(frozen=True)
class ExportFlow(Command):
    pass


@dataclass(frozen=True)
class ExportWorkbench(Command):
    pass


@dataclass(frozen=True)
class ExportMCPConfig(Command):
    pass


@dataclass(frozen=True)
class ImportMCPConfig(Command):
    config: Any


CommandHandler = Callable[[Command], Any]


class CommandDispatcher:
    """Routes command objects to the handlers registered for their type."""

    def __init__(self) -> None:
        self._handlers: Dict[type, List[CommandHandler]] = {}

    def register(self, command_type: type[Command], handler: CommandHandler) -> None:
        self._handlers.setdefault(command_type, []).append(handler)

    def unregister_all(self) -> None:
        self._handlers = {}

    def handles(self, command_type: type[Command]) -> bool:
        return bool(self._handlers.get(command_type))

    def dispatch(self, command: Command) -> List[Any]:
        """Run every handler for ``command`` and return their results in order."""
        handlers = self._handlers.get(type(command))
        if not handlers:
            raise ValidationError(f"No handler registered for {type(command).__name__}")
        return [handler(command) for handler in handlers]
