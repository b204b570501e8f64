"""Command handling for cocbot.

Provides the BotContext dependency container, the HandlerRegistry
routing table, dispatch() and the core command handlers.
"""

from .base import BotContext, HandlerRegistry, dispatch
from .core import CoreCommandHandler

__all__ = [
    "BotContext",
    "HandlerRegistry",
    "CoreCommandHandler",
    "dispatch",
]
