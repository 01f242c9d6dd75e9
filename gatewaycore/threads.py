"""Conversation threads and the messages stored in them."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    TypeAdapter,
    ValidationError,
)

from gatewaycore.gateway import ToolCall
from gatewaycore.message import MessageType


class MessageThread(BaseModel):
    """A thread of messages exchanged with one model."""

    model_config = ConfigDict(protected_namespaces=())

    id: str
    model_name: str
    user_id: str
    project_id: str


class MessageContentType(str, Enum):
    """Kind of one part of a stored message."""

    TEXT = "Text"
    IMAGE_URL = "ImageUrl"
    INPUT_AUDIO = "InputAudio"

    def __str__(self) -> str:
        return self.value


class ImageDetail(str, Enum):
    AUTO = "Auto"
    LOW = "Low"
    HIGH = "High"


class AudioFormat(str, Enum):
    MP3 = "Mp3"
    WAV = "Wav"


@dataclass(frozen=True)
class AudioDetail:
    """Options of an audio part."""

    type: AudioFormat


MessageContentPartOptions = Union[ImageDetail, AudioDetail]


def _parse_options(value: Any) -> Optional[MessageContentPartOptions]:
    if value is None or isinstance(value, (ImageDetail, AudioDetail)):
        return value
    if isinstance(value, str):
        try:
            return ImageDetail(value)
        except ValueError:
            pass
    if isinstance(value, dict) and "type" in value:
        try:
            return AudioDetail(AudioFormat(value["type"]))
        except ValueError:
            pass
    raise ValueError("data did not match any variant of untagged enum MessageContentPartOptions")


def _dump_options(value: Optional[MessageContentPartOptions]) -> Any:
    if value is None:
        return None
    if isinstance(value, AudioDetail):
        return {"type": value.type.value}
    return value.value


@dataclass(frozen=True)
class MessageContentPart:
    """One part of a message, written as ``[type, value, options]``."""

    type: MessageContentType
    value: str
    additional_options: Optional[MessageContentPartOptions] = None

    def to_json(self) -> list[Any]:
        """The three-element list form, options included."""
        return [str(self.type), self.value, _dump_options(self.additional_options)]

    def to_value(self) -> list[Any]:
        """The three-element list form with the options always null."""
        return [str(self.type), self.value, None]

    @classmethod
    def from_json(cls, data: Any) -> "MessageContentPart":
        """Read the three-element list form; raise ValueError when malformed."""
        if isinstance(data, cls):
            return data
        if not isinstance(data, (list, tuple)) or len(data) != 3:
            raise ValueError("invalid length, expected a tuple of 3 elements")
        kind, value, options = data
        if not isinstance(value, str):
            raise ValueError("the value of a content part must be a string")
        return cls(MessageContentType(kind), value, _parse_options(options))


InnerMessage = Union[str, list[MessageContentPart]]

_TOOL_CALLS = TypeAdapter(list[ToolCall])


def _field(data: dict[str, Any], key: str, required: bool = True) -> Any:
    if key not in data or data[key] is None:
        if required:
            raise ValueError(f"missing field `{key}`")
        return None
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _read_tool_calls(raw: Any) -> Optional[list[ToolCall]]:
    if isinstance(raw, str):
        raw = json.loads(raw)
    elif not isinstance(raw, list):
        return None
    if raw is None:
        return None
    try:
        return _TOOL_CALLS.validate_python(raw)
    except ValidationError:
        return None


@dataclass
class Message:
    """A message stored in a thread."""

    model_name: str
    user_id: str
    content_type: MessageContentType
    content_array: list[MessageContentPart]
    type: MessageType
    thread_id: Optional[str] = None
    content: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        """Read a stored message; tool calls may be given as a list or as JSON text."""
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        if "content_type" not in data:
            raise ValueError("missing field `content_type`")
        if "type" not in data:
            raise ValueError("missing field `type`")
        parts = data.get("content_array")
        if not isinstance(parts, list):
            raise ValueError("missing field `content_array`")
        return cls(
            model_name=_field(data, "model_name"),
            user_id=_field(data, "user_id"),
            content_type=MessageContentType(data["content_type"]),
            content_array=[MessageContentPart.from_json(part) for part in parts],
            type=MessageType(data["type"]),
            thread_id=_field(data, "thread_id", required=False),
            content=_field(data, "content", required=False),
            tool_call_id=_field(data, "tool_call_id", required=False),
            tool_calls=_read_tool_calls(data.get("tool_calls")),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form of the message."""
        return {
            "model_name": self.model_name,
            "thread_id": self.thread_id,
            "user_id": self.user_id,
            "content_type": str(self.content_type),
            "content": self.content,
            "content_array": [part.to_json() for part in self.content_array],
            "type": str(self.type),
            "tool_call_id": self.tool_call_id,
            "tool_calls": None
            if self.tool_calls is None
            else [call.model_dump() for call in self.tool_calls],
        }

    def inner_message(self) -> InnerMessage:
        """The parts of the message, or its text when it has no parts."""
        if self.content_array:
            return list(self.content_array)
        return self.content or ""


def default_include_history() -> bool:
    return True


def _parse_inner(value: Any) -> InnerMessage:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return [MessageContentPart.from_json(part) for part in value]
    raise ValueError("data did not match any variant of untagged enum InnerMessage")


def _dump_inner(value: InnerMessage) -> Any:
    if isinstance(value, str):
        return value
    return [part.to_json() for part in value]


class MessageRequest(BaseModel):
    """A message sent to a model, optionally within a thread."""

    model_config = ConfigDict(protected_namespaces=())

    model_name: str
    thread_id: Optional[str] = None
    user_id: str
    parameters: dict[str, Any]
    message: Annotated[Any, BeforeValidator(_parse_inner), PlainSerializer(_dump_inner)]
    include_history: bool = Field(default_factory=default_include_history)
    history_length: Optional[int] = Field(default=None, ge=0, le=2**32 - 1)