"""Command routing for cocbot.

Commands live in one flat table: the handler group returns a dict of
command name -> async callable, the HandlerRegistry holds it, and
dispatch() tokenizes a message and routes it.

Key classes:
    BotContext: Dependency container shared by all handlers.
    HandlerRegistry: Maps command names to handler callables.

Key functions:
    dispatch: Tokenize raw text and run the matching handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Mapping, Optional

import structlog

from ..exceptions import AliasStoreError
from ..messages import MSG_GENERIC_FAIL
from ..models import CommandInvocation
from ..tokenizer import tokenize

if TYPE_CHECKING:
    from ..alias_store import AliasStore

logger = structlog.get_logger("cocbot.commands")

Handler = Callable[[str, List[str]], Awaitable[Optional[str]]]


@dataclass
class BotContext:
    """Dependency container for command handlers.

    The dictionary is read-only and shared by every invocation; the
    alias store is the only mutable shared state.
    """

    dictionary: Mapping[str, str]
    alias_store: "AliasStore"


class HandlerRegistry:
    """Maps exact, case-sensitive command names to handler callables."""

    def __init__(self):
        self._handlers: Dict[str, Handler] = {}

    def register(self, commands: Dict[str, Handler]) -> None:
        """Merge a {command_name: async_handler} table into the registry.

        Args:
            commands: Mapping of command name to async handler.
        """
        for cmd_name, method in commands.items():
            if cmd_name in self._handlers:
                logger.warning("command_handler_conflict", command=cmd_name)
            self._handlers[cmd_name] = method

    def get(self, command: str) -> Optional[Handler]:
        """Look up a handler for a command name."""
        return self._handlers.get(command)

    @property
    def command_names(self) -> frozenset:
        """All registered command names."""
        return frozenset(self._handlers.keys())


async def dispatch(
    registry: HandlerRegistry, text: str, sender: str = ""
) -> Optional[str]:
    """Route one message to its handler.

    The first token (mention or prefix) is dropped, the second picks the
    handler, the rest are passed as arguments.

    Args:
        registry: Command table to route through.
        text: Raw message text.
        sender: Sender id, only used for logging.

    Returns:
        The reply text, or None when nothing should be sent: fewer than
        two tokens, or a command name nobody handles.
    """
    invocation = CommandInvocation.from_tokens(tokenize(text))
    if invocation is None:
        return None

    handler = registry.get(invocation.command)
    if handler is None:
        logger.debug("unknown_command_ignored", command=invocation.command)
        return None

    logger.debug(
        "command_routing",
        command=invocation.command,
        arg_count=len(invocation.args),
    )
    try:
        return await handler(sender, invocation.args)
    except AliasStoreError as e:
        logger.error(
            "command_store_error",
            command=invocation.command,
            error=str(e),
            retryable=e.is_retryable,
        )
        return MSG_GENERIC_FAIL
