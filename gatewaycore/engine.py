"""Engine kinds, model kinds and the model parameters each provider accepts."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, ClassVar, Iterator, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    field_serializer,
    field_validator,
    model_serializer,
    model_validator,
)

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_U8_MAX = 2**8 - 1
_U16_MAX = 2**16 - 1
_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


class EngineFeature(str, Enum):
    """A capability an engine may offer."""

    COMPLETIONS = "completions"
    EMBEDDINGS = "embeddings"
    FUNCTIONS = "functions"
    INTEGRATIONS = "integrations"

    def __str__(self) -> str:
        # Rendered as its JSON form, quotes included.
        return json.dumps(self.value)


_KNOWN_ENGINES = frozenset(
    {"openai", "bedrock", "anthropic", "gemini", "awslambda", "langdbfunctions", "routing", "secrets"}
)

_ENGINE_FEATURES: dict[str, tuple[EngineFeature, ...]] = {
    "openai": (EngineFeature.COMPLETIONS, EngineFeature.EMBEDDINGS),
    "bedrock": (EngineFeature.COMPLETIONS,),
    "awslambda": (EngineFeature.FUNCTIONS,),
    "langdbfunctions": (EngineFeature.FUNCTIONS,),
    "anthropic": (EngineFeature.COMPLETIONS,),
    "gemini": (EngineFeature.COMPLETIONS,),
    "routing": (EngineFeature.COMPLETIONS,),
    "secrets": (EngineFeature.INTEGRATIONS,),
}

_PROXY_FEATURES = (EngineFeature.COMPLETIONS, EngineFeature.EMBEDDINGS)

_SUPPORTED = frozenset(
    {
        ("openai", EngineFeature.COMPLETIONS),
        ("anthropic", EngineFeature.COMPLETIONS),
        ("gemini", EngineFeature.COMPLETIONS),
        ("bedrock", EngineFeature.COMPLETIONS),
        ("openai", EngineFeature.EMBEDDINGS),
        ("awslambda", EngineFeature.FUNCTIONS),
        ("langdbfunctions", EngineFeature.FUNCTIONS),
    }
)


class EngineType:
    """A known engine, or a proxy engine named by any other string."""

    __slots__ = ("name", "is_proxy")

    OPENAI: ClassVar[EngineType]
    BEDROCK: ClassVar[EngineType]
    ANTHROPIC: ClassVar[EngineType]
    GEMINI: ClassVar[EngineType]
    AWS_LAMBDA: ClassVar[EngineType]
    LANGDB_FUNCTIONS: ClassVar[EngineType]
    ROUTING: ClassVar[EngineType]
    SECRETS: ClassVar[EngineType]

    def __init__(self, name: str = "openai") -> None:
        lowered = name.lower()
        if lowered in _KNOWN_ENGINES:
            self.name = lowered
            self.is_proxy = False
        else:
            self.name = name
            self.is_proxy = True

    @classmethod
    def parse(cls, value: str) -> "EngineType":
        """Read an engine name; known names match case-insensitively."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise TypeError("an engine type must be given as a string")
        return cls(value)

    def supports(self, feature: EngineFeature) -> bool:
        """Whether the engine serves ``feature``."""
        if self.is_proxy:
            return feature in (EngineFeature.COMPLETIONS, EngineFeature.EMBEDDINGS)
        return (self.name, feature) in _SUPPORTED

    def supported_features(self) -> tuple[EngineFeature, ...]:
        """The features listed for the engine."""
        if self.is_proxy:
            return _PROXY_FEATURES
        return _ENGINE_FEATURES[self.name]

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"EngineType({self.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EngineType):
            return NotImplemented
        return (self.is_proxy, self.name) == (other.is_proxy, other.name)

    def __hash__(self) -> int:
        return hash((self.is_proxy, self.name))


EngineType.OPENAI = EngineType("openai")
EngineType.BEDROCK = EngineType("bedrock")
EngineType.ANTHROPIC = EngineType("anthropic")
EngineType.GEMINI = EngineType("gemini")
EngineType.AWS_LAMBDA = EngineType("awslambda")
EngineType.LANGDB_FUNCTIONS = EngineType("langdbfunctions")
EngineType.ROUTING = EngineType("routing")
EngineType.SECRETS = EngineType("secrets")


class ModelType(str, Enum):
    """What a model is used for."""

    COMPLETIONS = "completions"
    EMBEDDING = "embedding"
    ROUTING = "routing"
    IMAGE_GENERATION = "image_generation"

    @classmethod
    def parse(cls, value: Any) -> "ModelType":
        """Read a model type by its name or its alias; raise ValueError otherwise."""
        if isinstance(value, cls):
            return value
        try:
            return _MODEL_TYPE_NAMES[value]
        except (KeyError, TypeError):
            raise ValueError(f"unknown variant `{value}`") from None

    def __str__(self) -> str:
        return self.value


_MODEL_TYPE_NAMES: dict[str, ModelType] = {
    "completions": ModelType.COMPLETIONS,
    "Completions": ModelType.COMPLETIONS,
    "embedding": ModelType.EMBEDDING,
    "Embedding": ModelType.EMBEDDING,
    "routing": ModelType.ROUTING,
    "Routing": ModelType.ROUTING,
    "image_generation": ModelType.IMAGE_GENERATION,
    "ImageGeneration": ModelType.IMAGE_GENERATION,
}


class ParamType(str, Enum):
    """Type of a view parameter."""

    STRING = "String"
    INT = "Int"
    FLOAT = "Float"
    BOOLEAN = "Boolean"

    @classmethod
    def from_name(cls, value: str) -> Optional["ParamType"]:
        """The type with this name, case-insensitively, or None."""
        return _PARAM_TYPE_NAMES.get(value.lower())

    def sample(self) -> Any:
        """A placeholder value of this type."""
        if self is ParamType.STRING:
            return "sample"
        if self is ParamType.BOOLEAN:
            return False
        return 0

    def __str__(self) -> str:
        return self.value.lower()


_PARAM_TYPE_NAMES = {member.value.lower(): member for member in ParamType}


class ParamsValidationError(ValueError):
    """Model parameters outside their allowed ranges."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(f"{name}: {problem}" for name, problem in errors.items()))
        self.errors = dict(errors)


def _check_ranges(params: BaseModel, limits: dict[str, tuple[float, float]]) -> dict[str, str]:
    errors = {}
    for name, (low, high) in limits.items():
        value = getattr(params, name)
        if value is not None and not low <= value <= high:
            errors[name] = f"range: {value} not in [{low}, {high}]"
    return errors


def _raise_if_any(errors: dict[str, str]) -> None:
    if errors:
        raise ParamsValidationError(errors)


class _Params(BaseModel):
    """Base model that leaves out the listed fields when they are None."""

    model_config = ConfigDict(protected_namespaces=())

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset()

    @model_serializer(mode="wrap")
    def _drop_unset(self, handler) -> dict[str, Any]:
        data = handler(self)
        omit = type(self).OMIT_IF_NONE
        return {k: v for k, v in data.items() if not (v is None and k in omit)}


class ExecutionOptions(_Params):
    """How a model call is executed."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"max_retries"})

    max_retries: Optional[int] = Field(default=None, ge=_I32_MIN, le=_I32_MAX)


class ModelTool(BaseModel):
    """A tool a model may call, with the arguments passed to it."""

    name: str
    description: Optional[str] = None
    passed_args: list[str]


class ModelTools(RootModel[list[ModelTool]]):
    """The tools of a model, written as a plain list."""

    root: list[ModelTool] = Field(default_factory=list)

    def contains(self, name: str) -> bool:
        return any(tool.name == name for tool in self.root)

    def names(self) -> Iterator[str]:
        return (tool.name for tool in self.root)

    def is_empty(self) -> bool:
        return not self.root

    def __iter__(self) -> Iterator[ModelTool]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


class OpenAiModelParams(_Params):
    """Parameters of an OpenAI-compatible chat model."""

    model_config = ConfigDict(extra="forbid")

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"seed", "user", "response_format"})

    model: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("model", "model_name", "model_id")
    )
    frequency_penalty: Optional[float] = None
    logit_bias: Optional[dict[str, Any]] = None
    logprobs: Optional[bool] = None
    top_logprobs: Optional[int] = Field(default=None, ge=0, le=_U8_MAX)
    max_tokens: Optional[int] = Field(default=None, ge=0, le=_U32_MAX)
    presence_penalty: Optional[float] = None
    seed: Optional[int] = None
    stop: Optional[list[str]] = Field(
        default=None, validation_alias=AliasChoices("stop", "stop_sequences")
    )
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    user: Optional[str] = None
    response_format: Optional[dict[str, Any]] = None

    @field_validator("stop", mode="before")
    @classmethod
    def _one_or_many(cls, value: Any) -> Any:
        return [value] if isinstance(value, str) else value

    @field_serializer("stop")
    def _prefer_one(self, value: Optional[list[str]]) -> Any:
        if value is not None and len(value) == 1:
            return value[0]
        return value

    def check(self) -> "OpenAiModelParams":
        """Check value ranges; return self or raise ParamsValidationError."""
        errors = _check_ranges(
            self,
            {
                "frequency_penalty": (-2.0, 2.0),
                "top_logprobs": (0, 20),
                "presence_penalty": (-2.0, 2.0),
                "temperature": (0.0, 2.0),
                "top_p": (0.0, 1.0),
            },
        )
        if self.stop is not None and not 1 <= len(self.stop) <= 4:
            errors["stop"] = f"length: {len(self.stop)} not in [1, 4]"
        _raise_if_any(errors)
        return self


class ClaudeParams(_Params):
    """Extra fields for Claude models on Bedrock."""

    anthropic_version: Optional[str] = None
    top_k: Optional[int] = Field(default=None, ge=0, le=_U16_MAX)


class JurassicParams(_Params):
    """Extra fields for AI21 Jurassic models."""

    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    count_penalty: Optional[float] = None

    def check(self) -> "JurassicParams":
        _raise_if_any(
            _check_ranges(
                self,
                {
                    "presence_penalty": (0.0, 5.0),
                    "frequency_penalty": (0.0, 500.0),
                    "count_penalty": (0.0, 1.0),
                },
            )
        )
        return self


class JambaParams(_Params):
    """Extra fields for AI21 Jamba models."""

    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None

    def check(self) -> "JambaParams":
        _raise_if_any(
            _check_ranges(
                self, {"presence_penalty": (0.0, 5.0), "frequency_penalty": (0.0, 500.0)}
            )
        )
        return self


class CohereCommandParams(_Params):
    """Extra fields for Cohere Command models."""

    k: Optional[int] = Field(
        default=None, ge=0, le=_U16_MAX, validation_alias=AliasChoices("k", "top_k")
    )

    def check(self) -> "CohereCommandParams":
        _raise_if_any(_check_ranges(self, {"k": (0, 500)}))
        return self


class CohereCommandRParams(_Params):
    """Extra fields for Cohere Command R models."""

    k: Optional[int] = Field(
        default=None, ge=0, le=_U16_MAX, validation_alias=AliasChoices("k", "top_k")
    )
    preamble: Optional[str] = None
    prompt_truncation: Optional[Literal["Off", "AutoPreserveHistory"]] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    seed: Optional[int] = Field(default=None, ge=0, le=_U64_MAX)
    force_single_step: Optional[bool] = None

    def check(self) -> "CohereCommandRParams":
        _raise_if_any(
            _check_ranges(
                self,
                {
                    "k": (0, 500),
                    "frequency_penalty": (0.0, 1.0),
                    "presence_penalty": (0.0, 1.0),
                },
            )
        )
        return self


class MistralParams(_Params):
    """Extra fields for Mistral models."""

    tool_choice: Optional[Literal["None", "Auto", "Any"]] = None


_BEDROCK_KNOWN_KEYS = frozenset(
    {
        "model_id",
        "model_name",
        "max_tokens",
        "temperature",
        "top_p",
        "stop_sequences",
        "stop",
        "additional_parameters",
    }
)


class BedrockModelParams(_Params):
    """Parameters of a Bedrock model; unknown keys are kept as additional parameters."""

    model_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("model_id", "model_name")
    )
    max_tokens: Optional[int] = Field(default=None, ge=_I32_MIN, le=_I32_MAX)
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stop_sequences: Optional[list[str]] = Field(
        default=None, validation_alias=AliasChoices("stop_sequences", "stop")
    )
    additional_parameters: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_additional(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        extra = {k: v for k, v in data.items() if k not in _BEDROCK_KNOWN_KEYS}
        if not extra:
            return data
        out = {k: v for k, v in data.items() if k in _BEDROCK_KNOWN_KEYS}
        given = out.get("additional_parameters")
        base = dict(given) if isinstance(given, dict) else {}
        out["additional_parameters"] = {**base, **extra}
        return out

    @model_serializer(mode="wrap")
    def _drop_unset(self, handler) -> dict[str, Any]:
        data = handler(self)
        extra = data.pop("additional_parameters", {}) or {}
        data.update(extra)
        return data


class AnthropicModelParams(_Params):
    """Parameters of an Anthropic model."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"stream", "temperature", "top_p", "top_k"})

    model: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("model", "model_name", "model_id")
    )
    max_tokens: Optional[int] = Field(default=None, ge=0, le=_U32_MAX)
    stop_sequences: Optional[list[str]] = Field(
        default=None, validation_alias=AliasChoices("stop_sequences", "stop")
    )
    stream: Optional[bool] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = Field(default=None, ge=0, le=_U32_MAX)
    thinking: Optional[dict[str, Any]] = None


class GeminiModelParams(_Params):
    """Parameters of a Gemini model."""

    model: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("model", "model_name", "model_id")
    )
    max_output_tokens: Optional[int] = Field(
        default=None,
        ge=_I32_MIN,
        le=_I32_MAX,
        validation_alias=AliasChoices("max_output_tokens", "max_tokens"),
    )
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = Field(default=None, ge=_I32_MIN, le=_I32_MAX)
    stop_sequences: Optional[list[str]] = None
    candidate_count: Optional[int] = Field(default=None, ge=0, le=_U32_MAX)
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    seed: Optional[int] = None
    response_logprobs: Optional[bool] = None
    logprobs: Optional[int] = Field(default=None, ge=_I32_MIN, le=_I32_MAX)
    response_format: Optional[dict[str, Any]] = None