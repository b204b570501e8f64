"""Pydantic models shared by the dispatcher and the transport."""

from typing import List, Optional

from pydantic import BaseModel, Field


class CommandInvocation(BaseModel):
    """One parsed command, alive only while it is being dispatched."""

    prefix: str = Field(..., description="First token, the bot mention or prefix")
    command: str = Field(..., description="Exact, case-sensitive command name")
    args: List[str] = Field(default_factory=list)

    @classmethod
    def from_tokens(cls, tokens: List[str]) -> Optional["CommandInvocation"]:
        """Build an invocation, or None when there is no command token."""
        if len(tokens) < 2:
            return None
        return cls(prefix=tokens[0], command=tokens[1], args=tokens[2:])


class IncomingMessage(BaseModel):
    """A "message received" event as delivered by the transport."""

    sender: str
    channel: str = Field(..., description="Where the reply goes: group id or sender")
    text: str
    timestamp: int = 0
