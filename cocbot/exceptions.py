"""Custom exception hierarchy for cocbot.

Every error raised by the bot's own code derives from CocBotError, so
the transport can catch broadly while handlers still react to the
precise subclass (e.g. a store failure becomes a generic chat reply).
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for logging and escalation."""
    TRANSIENT = "transient"          # Worth retrying (locked database, I/O hiccup)
    PERMANENT = "permanent"          # Bad input or bad data, retry won't help
    INFRASTRUCTURE = "infrastructure"  # Missing files, unreadable config


class CocBotError(Exception):
    """Base exception for all cocbot errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification.
        module: Originating module name (e.g. "alias_store").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


class ConfigError(CocBotError):
    """Invalid or incomplete configuration detected at startup."""

    def __init__(
        self,
        message: str = "",
        *,
        key: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.key = key
        super().__init__(
            message, category=category, module=module or "config", **context
        )


class DictionaryLoadError(CocBotError):
    """The term dictionary could not be read or failed validation.

    Attributes:
        path: Location of the data file that failed to load.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.path = path
        super().__init__(
            message, category=category, module=module or "dictionary", **context
        )


class AliasStoreError(CocBotError):
    """Failure inside the alias key-value store.

    Raised for SQLite errors (wrapped, TRANSIENT by default) and for
    misuse such as writing inside a read-only transaction (PERMANENT).
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "alias_store", **context
        )
