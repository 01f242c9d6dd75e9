"""Interfaces for evaluating guards and for partner guard services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence, Union

from gatewaycore.gateway import ChatCompletionMessage, content_as_string
from gatewaycore.guardrails import BooleanResult, Guard, JsonResult, TextResult

GuardResult = Union[BooleanResult, TextResult, JsonResult]


class Evaluator(ABC):
    """Evaluates messages against a guard."""

    @abstractmethod
    async def evaluate(
        self, messages: Sequence[ChatCompletionMessage], guard: Guard
    ) -> GuardResult:
        """The verdict of ``guard`` on ``messages``."""

    def messages_to_text(self, messages: Sequence[ChatCompletionMessage]) -> str:
        """The plain text of the last message; raise ValueError when there is none."""
        if not messages:
            raise ValueError("No message in request")
        content = messages[-1].content
        if content is None:
            raise ValueError("No content in message")
        text = content_as_string(content)
        if text is None:
            raise ValueError("No text in content")
        return text


class GuardPartnerError(Exception):
    """A partner service could not evaluate a guard."""


class EvaluationFailedError(GuardPartnerError):
    def __init__(self, detail: str) -> None:
        super().__init__("Failed to evaluate guard")
        self.detail = detail


class InputTypeNotSupportedError(GuardPartnerError):
    def __init__(self, input_type: str) -> None:
        super().__init__(f"Input type {input_type}not supported")
        self.input_type = input_type


class InputImageMissingError(GuardPartnerError):
    def __init__(self) -> None:
        super().__init__("Input image is missing")


class GuardPartner(ABC):
    """A third-party service that evaluates messages."""

    @abstractmethod
    async def evaluate(self, messages: Sequence[ChatCompletionMessage]) -> GuardResult:
        """The verdict on ``messages``; raise GuardPartnerError on failure."""