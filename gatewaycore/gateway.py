"""OpenAI-compatible request and response types handled by the gateway."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationError,
    model_serializer,
    model_validator,
)

_U32_MAX = 2**32 - 1

U8 = Annotated[int, Field(ge=0, le=255)]
U16 = Annotated[int, Field(ge=0, le=65535)]
U32 = Annotated[int, Field(ge=0, le=_U32_MAX)]
U64 = Annotated[int, Field(ge=0, le=2**64 - 1)]


class _Model(BaseModel):
    """Base model that leaves out the listed fields when they are None."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset()

    @model_serializer(mode="wrap")
    def _drop_unset(self, handler) -> dict[str, Any]:
        data = handler(self)
        omit = type(self).OMIT_IF_NONE
        if not omit:
            return data
        return {k: v for k, v in data.items() if not (v is None and k in omit)}


# --- messages and tools -----------------------------------------------------


class ContentType(str, Enum):
    """Kind of one part of a multi-part message."""

    TEXT = "text"
    IMAGE_URL = "image_url"
    INPUT_AUDIO = "input_audio"


class ImageUrl(_Model):
    url: str


class InputAudio(_Model):
    data: str
    format: str


class Content(_Model):
    """One part of a multi-part message."""

    type: ContentType
    text: Optional[str] = None
    image_url: Optional[ImageUrl] = None
    audio: Optional[InputAudio] = None


ChatCompletionContent = Union[str, list[Content]]


def content_as_string(content: Optional[ChatCompletionContent]) -> Optional[str]:
    """The text of plain-text content; None for multi-part content."""
    return content if isinstance(content, str) else None


class FunctionCall(_Model):
    name: str
    arguments: str


class ToolCall(_Model):
    index: Optional[Annotated[int, Field(ge=0)]] = None
    id: str
    type: str
    function: FunctionCall


class ChatCompletionMessage(_Model):
    """One message of a chat conversation."""

    role: str
    content: Optional[ChatCompletionContent] = None
    tool_calls: Optional[list[ToolCall]] = None
    refusal: Optional[str] = None
    tool_call_id: Optional[str] = None

    @classmethod
    def new_text(cls, role: str, content: str) -> "ChatCompletionMessage":
        """A message holding plain text."""
        return cls(role=role, content=content)


class Property(_Model):
    """JSON schema of one function parameter."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"description", "items"})

    type: Union[str, list[str]]
    description: Optional[str] = None
    items: Optional[Property] = None


Property.model_rebuild()


class FunctionParameters(_Model):
    type: str
    properties: dict[str, Property]
    required: list[str]


class ChatCompletionFunction(_Model):
    name: str
    description: Optional[str] = None
    parameters: FunctionParameters


class ChatCompletionTool(_Model):
    type: str
    function: ChatCompletionFunction


class ResponseFormat(_Model):
    type: str


class StreamOptions(_Model):
    include_usage: bool


# --- requests ---------------------------------------------------------------


class ChatCompletionRequest(_Model):
    """An OpenAI-style chat completion request."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset(
        {
            "temperature", "top_p", "n", "stream", "stop", "max_tokens",
            "presence_penalty", "frequency_penalty", "logit_bias", "user",
            "response_format", "seed", "functions", "function_call", "tools",
            "tool_choice", "stream_options",
        }
    )

    model: str
    messages: list[ChatCompletionMessage] = Field(default_factory=list)
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    n: Optional[U32] = None
    stream: Optional[bool] = None
    stop: Optional[list[str]] = None
    max_tokens: Optional[U32] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    logit_bias: Optional[dict[str, Any]] = None
    user: Optional[str] = None
    response_format: Optional[dict[str, Any]] = None
    seed: Optional[int] = None
    functions: Optional[list[ChatCompletionFunction]] = None
    function_call: Optional[Any] = None
    tools: Optional[list[ChatCompletionTool]] = None
    tool_choice: Optional[Any] = None
    stream_options: Optional[StreamOptions] = None

    def with_model(self, model: str) -> "ChatCompletionRequest":
        """A copy of the request aimed at another model."""
        return self.model_copy(update={"model": model})


class Thinking(_Model):
    type: str
    budget_tokens: U64


class GuardWithParameters(_Model):
    id: str
    parameters: Any


GuardOrName = Union[str, GuardWithParameters]


class RequestUser(_Model):
    """The end user a request is made for."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"id", "name", "tiers"})

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "user_id"))
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "user_name"))
    tiers: Optional[list[str]] = Field(
        default=None, validation_alias=AliasChoices("tiers", "user_tags", "tags")
    )


class Extra(BaseModel):
    """Gateway-specific request options."""

    user: Optional[RequestUser] = None
    guards: list[GuardOrName] = Field(default_factory=list)

    @model_serializer(mode="wrap")
    def _drop_empty(self, handler) -> dict[str, Any]:
        data = handler(self)
        if data.get("user") is None:
            data.pop("user", None)
        if not data.get("guards"):
            data.pop("guards", None)
        return data


class ProviderSpecificRequest(_Model):
    """Options that only some providers understand."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"thinking", "top_k"})

    thinking: Optional[Thinking] = None
    top_k: Optional[U32] = None


class DynamicRouter(BaseModel):
    """A router given inline; keys other than targets and name form the strategy."""

    strategy: dict[str, Any] = Field(default_factory=dict)
    targets: list[dict[str, Any]] = Field(default_factory=list)
    name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _collect_strategy(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if isinstance(data.get("strategy"), dict) and set(data) <= {"strategy", "targets", "name"}:
            return data
        rest = dict(data)
        out: dict[str, Any] = {k: rest.pop(k) for k in ("targets", "name") if k in rest}
        out["strategy"] = rest
        return out

    @model_serializer(mode="wrap")
    def _flatten(self, handler) -> dict[str, Any]:
        data = handler(self)
        body = dict(data["strategy"])
        body["targets"] = data["targets"]
        if data["name"] is not None:
            body["name"] = data["name"]
        return body


class ToolSelector(_Model):
    name: str
    description: Optional[str] = None


class SseTransport(_Model):
    type: Literal["sse"] = "sse"
    server_url: str
    headers: dict[str, str] = Field(default_factory=dict)
    env: Optional[dict[str, str]] = None


class WsTransport(_Model):
    type: Literal["ws"] = "ws"
    server_url: str
    headers: dict[str, str] = Field(default_factory=dict)
    env: Optional[dict[str, str]] = None


class InMemoryTransport(_Model):
    type: Literal["in-memory"] = "in-memory"
    name: str = "langdb"


McpTransport = Annotated[
    Union[SseTransport, WsTransport, InMemoryTransport], Field(discriminator="type")
]


class McpDefinition(BaseModel):
    """An MCP server and the tools to take from it; a filter of None means all tools."""

    filter: Optional[list[ToolSelector]] = None
    transport: McpTransport

    @model_validator(mode="before")
    @classmethod
    def _nest_transport(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "transport" in data:
            return data
        return {
            "filter": data.get("filter"),
            "transport": {k: v for k, v in data.items() if k != "filter"},
        }

    @model_serializer(mode="wrap")
    def _flatten(self, handler) -> dict[str, Any]:
        data = handler(self)
        return {"filter": data["filter"], **data["transport"]}

    def server_name(self) -> str:
        """The server's URL, or the name of an in-memory server."""
        if isinstance(self.transport, InMemoryTransport):
            return self.transport.name
        return self.transport.server_url

    def env(self) -> Optional[dict[str, str]]:
        """Environment passed to the server; in-memory servers have none."""
        if isinstance(self.transport, InMemoryTransport):
            return None
        return None if self.transport.env is None else dict(self.transport.env)


_OWN_FIELDS = ("mcp_servers", "router", "variables", "extra")
_PROVIDER_FIELDS = ("thinking", "top_k")


class ChatCompletionRequestWithTools(BaseModel):
    """A chat request plus gateway options, all given as one flat JSON object."""

    request: ChatCompletionRequest
    mcp_servers: Optional[list[McpDefinition]] = None
    router: Optional[DynamicRouter] = None
    variables: Optional[dict[str, Any]] = None
    extra: Optional[Extra] = None
    provider_specific: Optional[ProviderSpecificRequest] = None

    @model_validator(mode="before")
    @classmethod
    def _unflatten(cls, data: Any) -> Any:
        if not isinstance(data, dict) or ("request" in data and "model" not in data):
            return data
        out: dict[str, Any] = {k: data[k] for k in _OWN_FIELDS if k in data}
        out["request"] = {
            k: v for k, v in data.items() if k in ChatCompletionRequest.model_fields
        }
        out["provider_specific"] = {k: data[k] for k in _PROVIDER_FIELDS if k in data}
        return out

    @model_serializer(mode="wrap")
    def _flatten(self, handler) -> dict[str, Any]:
        data = handler(self)
        body = dict(data["request"])
        for name in _OWN_FIELDS:
            if data[name] is not None:
                body[name] = data[name]
        if data["provider_specific"]:
            body.update(data["provider_specific"])
        return body


# --- responses --------------------------------------------------------------


class ChatCompletionUsage(_Model):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cost: float


class ChatCompletionChoice(_Model):
    index: int
    message: ChatCompletionMessage
    finish_reason: Optional[str] = None


class ChatCompletionResponse(_Model):
    id: str
    object: str
    created: int
    model: str
    choices: list[ChatCompletionChoice]
    usage: ChatCompletionUsage


class ChatModel(_Model):
    id: str
    object: str
    created: int
    owned_by: str


class ChatCompletionDelta(_Model):
    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"role", "content", "tool_calls"})

    role: Optional[str] = None
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None


class ChatCompletionChunkChoice(_Model):
    index: int
    delta: ChatCompletionDelta
    finish_reason: Optional[str] = None
    logprobs: Optional[str] = None


class ChatCompletionChunk(_Model):
    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"usage"})

    id: str
    object: str
    created: int
    model: str
    choices: list[ChatCompletionChunkChoice]
    usage: Optional[ChatCompletionUsage] = None


# --- usage and cost ---------------------------------------------------------


class PromptTokensDetails(_Model):
    cached_tokens: U32
    audio_tokens: U32


class CompletionTokensDetails(_Model):
    accepted_prediction_tokens: U32
    audio_tokens: U32
    reasoning_tokens: U32
    rejected_prediction_tokens: U32


class CompletionModelUsage(_Model):
    input_tokens: U32
    output_tokens: U32
    total_tokens: U32
    prompt_tokens_details: Optional[PromptTokensDetails] = None
    completion_tokens_details: Optional[CompletionTokensDetails] = None


class ImageGenerationModelUsage(_Model):
    quality: str
    size: tuple[U32, U32]
    images_count: U8
    steps_count: U8


Usage = Union[CompletionModelUsage, ImageGenerationModelUsage]


def parse_usage(data: Any) -> Usage:
    """Read usage of a completion or of an image generation, whichever fits."""
    for variant in (CompletionModelUsage, ImageGenerationModelUsage):
        try:
            return variant.model_validate(data)
        except ValidationError:
            continue
    raise ValueError("data did not match any variant of untagged enum Usage")


class CostCalculatorError(Exception):
    """A cost could not be calculated."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"Calcualtion error: {self.message}"


class ModelNotFoundError(CostCalculatorError):
    """No price is known for the model."""

    def __init__(self) -> None:
        super().__init__("Model not found")

    def __str__(self) -> str:
        return "Model not found"


@dataclass(frozen=True)
class TypePrice:
    """Price of one image of a given size and quality."""

    size: str
    quality: str
    per_image: float

    def _tagged(self) -> dict[str, Any]:
        return {"TypePrice": {"size": self.size, "quality": self.quality, "per_image": self.per_image}}


@dataclass(frozen=True)
class MPPrice:
    """Price per megapixel."""

    value: float

    def _tagged(self) -> dict[str, Any]:
        return {"MPPrice": self.value}


@dataclass(frozen=True)
class SingleImagePrice:
    """Flat price per image."""

    value: float

    def _tagged(self) -> dict[str, Any]:
        return {"SingleImagePrice": self.value}


ImageCostCalculationResult = Union[TypePrice, MPPrice, SingleImagePrice]


@dataclass
class CostCalculationResult:
    """The cost of one call and the unit prices behind it."""

    cost: float
    per_input_token: float
    per_output_token: float
    per_image_cost: Optional[ImageCostCalculationResult] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; the image price is left out when absent."""
        result: dict[str, Any] = {
            "cost": self.cost,
            "per_input_token": self.per_input_token,
            "per_output_token": self.per_output_token,
        }
        if self.per_image_cost is not None:
            result["per_image_cost"] = self.per_image_cost._tagged()
        return result


class CostCalculator(ABC):
    """Prices the usage of a model."""

    @abstractmethod
    async def calculate_cost(
        self, model_name: str, provider_name: str, usage: Usage
    ) -> CostCalculationResult:
        """Cost of ``usage``; raise CostCalculatorError when it cannot be priced."""


# --- embeddings -------------------------------------------------------------


class EncodingFormat(str, Enum):
    FLOAT = "float"
    BASE64 = "base64"


Input = Union[str, list[str]]


class CreateEmbeddingRequest(_Model):
    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"user"})

    model: str
    input: Input
    user: Optional[str] = None
    dimensions: Optional[U16] = None
    encoding_format: EncodingFormat = EncodingFormat.FLOAT


class EmbeddingData(_Model):
    object: str
    embedding: list[float]
    index: U32


class EmbeddingUsage(_Model):
    prompt_tokens: U32
    total_tokens: U32


class CreateEmbeddingResponse(_Model):
    object: str
    data: list[EmbeddingData]
    model: str
    usage: EmbeddingUsage


# --- images -----------------------------------------------------------------


class ImageQuality(str, Enum):
    SD = "standard"
    HD = "hd"

    def __str__(self) -> str:
        return self.value


class ImageResponseFormat(str, Enum):
    B64_JSON = "B64Json"
    URL = "Url"


class ImageStyle(str, Enum):
    VIVID = "vivid"
    NATURAL = "natural"


_DIMENSION = re.compile(r"\+?[0-9]+")


def _parse_dimension(part: str, what: str) -> int:
    if not _DIMENSION.fullmatch(part) or int(part) > _U32_MAX:
        raise ValueError(f"Invalid {what} value")
    return int(part)


@dataclass(frozen=True)
class ImageSize:
    """Width and height of an image, written as ``{width}x{height}``."""

    width: int
    height: int

    SIZE_256X256: ClassVar[ImageSize]
    SIZE_512X512: ClassVar[ImageSize]
    SIZE_1024X1024: ClassVar[ImageSize]
    SIZE_1792X1024: ClassVar[ImageSize]
    SIZE_1024X1792: ClassVar[ImageSize]

    @classmethod
    def parse(cls, text: str) -> "ImageSize":
        """Read a size such as ``1024x1024``; raise ValueError when malformed."""
        parts = text.split("x")
        if len(parts) != 2:
            raise ValueError("Invalid image size format. Expected {width}x{height}")
        return cls(_parse_dimension(parts[0], "width"), _parse_dimension(parts[1], "height"))

    def dimensions(self) -> tuple[int, int]:
        return (self.width, self.height)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


ImageSize.SIZE_256X256 = ImageSize(256, 256)
ImageSize.SIZE_512X512 = ImageSize(512, 512)
ImageSize.SIZE_1024X1024 = ImageSize(1024, 1024)
ImageSize.SIZE_1792X1024 = ImageSize(1792, 1024)
ImageSize.SIZE_1024X1792 = ImageSize(1024, 1792)


def _coerce_size(value: Any) -> Any:
    if isinstance(value, ImageSize):
        return value
    if isinstance(value, str):
        return ImageSize.parse(value)
    raise ValueError("expected an image size string")


ImageSizeField = Annotated[
    ImageSize, BeforeValidator(_coerce_size), PlainSerializer(str, return_type=str)
]


class CreateImageRequest(_Model):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset(
        {"n", "quality", "response_format", "size", "style", "user"}
    )

    prompt: str
    model: str
    n: Optional[U8] = None
    quality: Optional[ImageQuality] = None
    response_format: Optional[ImageResponseFormat] = None
    size: Optional[ImageSizeField] = None
    style: Optional[ImageStyle] = None
    user: Optional[str] = None