"""Prompt message types."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class MessageType(str, Enum):
    """Who a prompt message comes from."""

    SYSTEM_MESSAGE = "system"
    AI_MESSAGE = "ai"
    HUMAN_MESSAGE = "human"
    TOOL_RESULT = "tool"

    def __str__(self) -> str:
        return self.value


class PromptMessage(BaseModel):
    """One message of a prompt template together with the variables it uses."""

    type: MessageType
    msg: str
    wired: bool = False
    parameters: set[str]

    def __str__(self) -> str:
        return f"{self.type} {self.msg}"