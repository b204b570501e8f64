"""Core command handlers for cocbot.

Handles: help, version, find, add-alias, get-alias, remove-alias, resist.

Every handler takes (sender, args) where args is the token list after
the command name, and returns exactly one reply string. Alias store
work runs in a worker thread so a slow transaction never blocks the
event loop.
"""

from __future__ import annotations

import asyncio
import re
from typing import List, Optional

import structlog

from .. import messages
from ..alias_store import AliasTransaction
from .base import BotContext, Handler

logger = structlog.get_logger("cocbot.commands")

_INTEGER = re.compile(r"[+-]?[0-9]+")

# Values a signed 64-bit integer can hold
_INT_MIN = -(2 ** 63)
_INT_MAX = 2 ** 63 - 1

AUTO_SUCCESS_ABOVE = 95
AUTO_FAILURE_BELOW = 5


def parse_int(token: str) -> Optional[int]:
    """Parse a signed base-10 64-bit integer token, or return None."""
    if not _INTEGER.fullmatch(token):
        return None
    value = int(token)
    if not _INT_MIN <= value <= _INT_MAX:
        return None
    return value


def resistance(active: int, passive: int) -> int:
    """Percentile chance for an active value to beat a passive one."""
    return (active - passive) * 5 + 50


class CoreCommandHandler:
    """Handles the bot's fixed command set."""

    def __init__(self, ctx: BotContext):
        self.ctx = ctx

    def get_commands(self) -> dict[str, Handler]:
        return {
            "help": self.handle_help,
            "version": self.handle_version,
            "add-alias": self.handle_add_alias,
            "get-alias": self.handle_get_alias,
            "remove-alias": self.handle_remove_alias,
            "find": self.handle_find,
            "resist": self.handle_resist,
        }

    async def handle_help(self, sender: str, args: List[str]) -> str:
        """Show usage for every command. Arguments are ignored."""
        return messages.MSG_HELP

    async def handle_version(self, sender: str, args: List[str]) -> str:
        return messages.MSG_VERSION

    async def handle_find(self, sender: str, args: List[str]) -> str:
        """Look up a term, following an alias if there is one.

        Chat usage::

            !coc find cthulhu

        Args:
            sender: Id of the message sender.
            args: Exactly one token, the term or alias to look up.

        Returns:
            The definition (naming the alias target when an alias was
            used), the not-found reply, or usage help.
        """
        if len(args) != 1:
            return messages.usage(messages.MSG_HELP_FIND)

        key = args[0].lower()
        alias_target = await asyncio.to_thread(
            self.ctx.alias_store.view, lambda tx: tx.get(key)
        )
        dictionary = self.ctx.dictionary

        if alias_target is not None:
            definition = dictionary.get(alias_target)
            if definition is None:
                logger.info("find_dangling_alias", alias=key, target=alias_target)
                return messages.MSG_FIND_FAIL
            return messages.MSG_FIND_PASS_WITH_ALIAS % (key, alias_target, definition)

        definition = dictionary.get(key)
        if definition is None:
            return messages.MSG_FIND_FAIL
        return messages.MSG_FIND_PASS % (key, definition)

    async def handle_add_alias(self, sender: str, args: List[str]) -> str:
        """Add an alias for an existing dictionary term.

        Chat usage::

            !coc add-alias big c = cthulhu

        The existence check and the insert share one write transaction,
        so two concurrent adds of the same alias cannot both succeed.

        Returns:
            Success, duplicate, target-not-found, or usage help.
        """
        if not args:
            return messages.usage(messages.MSG_HELP_ADD_ALIAS)

        parts = " ".join(args).split(" = ")
        if len(parts) != 2:
            return messages.usage(messages.MSG_HELP_ADD_ALIAS)
        alias_name = parts[0].lower()
        target_name = parts[1].lower()

        if target_name not in self.ctx.dictionary:
            return messages.MSG_ADD_ALIAS_TARGET_NOT_FOUND

        def add(tx: AliasTransaction) -> bool:
            if tx.get(alias_name) is not None:
                return False
            tx.put(alias_name, target_name)
            return True

        added = await asyncio.to_thread(self.ctx.alias_store.update, add)
        if not added:
            return messages.MSG_ADD_ALIAS_DUPLICATE_FOUND % alias_name

        logger.info("alias_added", alias=alias_name, target=target_name)
        return messages.MSG_ADD_ALIAS_PASS % (target_name, alias_name)

    async def handle_get_alias(self, sender: str, args: List[str]) -> str:
        """Show which term an alias points to.

        The joined name is looked up as typed, without lowercasing.
        """
        if not args:
            return messages.usage(messages.MSG_HELP_GET_ALIAS)

        alias_name = " ".join(args)
        target_name = await asyncio.to_thread(
            self.ctx.alias_store.view, lambda tx: tx.get(alias_name)
        )
        if target_name is None:
            return messages.MSG_GET_ALIAS_FAIL % alias_name
        return messages.MSG_GET_ALIAS_PASS % (target_name, alias_name)

    async def handle_remove_alias(self, sender: str, args: List[str]) -> str:
        """Delete an alias. The joined name is matched as typed."""
        if not args:
            return messages.usage(messages.MSG_HELP_REMOVE_ALIAS)

        alias_name = " ".join(args)
        removed = await asyncio.to_thread(
            self.ctx.alias_store.update, lambda tx: tx.delete(alias_name)
        )
        if not removed:
            return messages.MSG_REMOVE_ALIAS_FAIL % alias_name

        logger.info("alias_removed", alias=alias_name)
        return messages.MSG_REMOVE_ALIAS_PASS % alias_name

    async def handle_resist(self, sender: str, args: List[str]) -> str:
        """Resolve a resistance check.

        Chat usage::

            !coc resist 12 vs 10

        Returns:
            The inputs followed by the percentile result, or an
            automatic success/failure when it leaves the 5-95 band.
        """
        if len(args) != 3 or args[1] != "vs":
            return messages.usage(messages.MSG_HELP_RESIST)

        active = parse_int(args[0])
        if active is None:
            logger.warning("resist_parse_error", side="active", value=args[0][:20])
            return messages.usage(messages.MSG_HELP_RESIST)
        passive = parse_int(args[2])
        if passive is None:
            logger.warning("resist_parse_error", side="passive", value=args[2][:20])
            return messages.usage(messages.MSG_HELP_RESIST)

        result = resistance(active, passive)
        reply = messages.MSG_RESIST_THINK % (active, passive)
        if result > AUTO_SUCCESS_ABOVE:
            reply += messages.MSG_RESIST_AUTO_PASS
        elif result < AUTO_FAILURE_BELOW:
            reply += messages.MSG_RESIST_AUTO_FAIL
        else:
            reply += messages.MSG_RESIST_NORMAL % result
        return reply
