"""Model, prompt and view definitions, and the engine settings behind them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Callable, ClassVar, Literal, Optional, Union

from jinja2 import Environment, meta
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    model_serializer,
    model_validator,
)

from gatewaycore.credentials import (
    ApiKeyCredentials,
    ApiKeyWithEndpointCredentials,
    AwsCredentials,
    LangDbCredentials,
    dump_credentials,
    parse_credentials,
)
from gatewaycore.engine import (
    AnthropicModelParams,
    BedrockModelParams,
    ClaudeParams,
    CohereCommandParams,
    CohereCommandRParams,
    ExecutionOptions,
    GeminiModelParams,
    JambaParams,
    JurassicParams,
    ModelTools,
    ModelType,
    OpenAiModelParams,
    ParamType,
)
from gatewaycore.jsonfield import loads_if_string
from gatewaycore.message import MessageType, PromptMessage
from gatewaycore.provider import BedrockProvider


class _Base(BaseModel):
    model_config = ConfigDict(protected_namespaces=(), arbitrary_types_allowed=True)


_CREDENTIAL_TYPES = (
    ApiKeyCredentials,
    ApiKeyWithEndpointCredentials,
    AwsCredentials,
    LangDbCredentials,
)


def _coerce_credentials(value: Any) -> Any:
    if value is None or isinstance(value, _CREDENTIAL_TYPES):
        return value
    return parse_credentials(loads_if_string(value))


def _dump_optional_credentials(value: Any) -> Any:
    return None if value is None else dump_credentials(value)


def _coerce_model_type(value: Any) -> ModelType:
    return ModelType.parse(value)


class Model(_Base):
    """A model as stored; JSON fields may also be given as JSON text."""

    name: str
    description: Optional[str] = None
    provider_name: str
    prompt_name: Optional[str] = None
    model_params: Annotated[dict[str, Any], BeforeValidator(loads_if_string)]
    execution_options: Annotated[ExecutionOptions, BeforeValidator(loads_if_string)]
    tools: Annotated[ModelTools, BeforeValidator(loads_if_string)]
    model_type: Annotated[ModelType, BeforeValidator(_coerce_model_type)]
    response_schema: Optional[str] = None
    # Borrowed from the provider at run time; never stored.
    credentials: Annotated[
        Optional[Any],
        BeforeValidator(_coerce_credentials),
        PlainSerializer(_dump_optional_credentials),
    ] = None


class Prompt(_Base):
    """A named list of prompt messages."""

    name: str
    messages: Annotated[list[PromptMessage], BeforeValidator(loads_if_string)]
    owning_model: Optional[str] = None

    @classmethod
    def new(cls, name: str, system_msg: str) -> "Prompt":
        """A prompt of one system message whose template variables are collected."""
        env = Environment()
        parameters = set(meta.find_undeclared_variables(env.parse(system_msg)))
        message = PromptMessage(
            type=MessageType.SYSTEM_MESSAGE,
            msg=system_msg,
            parameters=parameters,
            wired=False,
        )
        return cls(name=name, messages=[message], owning_model=None)

    def get_variables(self) -> list[str]:
        """Every variable of every message, message by message."""
        return [name for message in self.messages for name in sorted(message.parameters)]

    @staticmethod
    def render(template: str, variables: dict[str, Any]) -> str:
        """Render a template with the given variables."""
        return Environment().from_string(template).render(**variables)

    @classmethod
    def empty(cls) -> "Prompt":
        """A prompt without messages."""
        return cls(name="empty", messages=[], owning_model=None)


def _tagged_parser(base: type, variants: tuple[type, ...]) -> Callable[[Any], Any]:
    by_tag = {variant.TAG: variant for variant in variants}

    def parse(value: Any) -> Any:
        if isinstance(value, base):
            return value
        if isinstance(value, dict) and len(value) == 1:
            tag, body = next(iter(value.items()))
            variant = by_tag.get(tag)
            if variant is not None:
                return variant.model_validate(body)
        raise ValueError(f"expected one of the variants {', '.join(by_tag)}")

    return parse


class _Tagged(_Base):
    """A variant written as ``{Tag: {...fields}}``."""

    TAG: ClassVar[str] = ""

    @model_validator(mode="before")
    @classmethod
    def _untag(cls, data: Any) -> Any:
        if isinstance(data, dict) and len(data) == 1 and cls.TAG in data:
            return data[cls.TAG]
        return data

    @model_serializer(mode="wrap")
    def _tag(self, handler) -> dict[str, Any]:
        return {self.TAG: handler(self)}


class CompletionEngineParams(_Tagged):
    """Settings of the engine that serves a completion model."""

    ENGINE: ClassVar[str] = ""

    def engine_name(self) -> str:
        return self.ENGINE

    def provider_name(self) -> str:
        return self.ENGINE

    def model_name(self) -> Optional[str]:
        return self.params.model  # type: ignore[attr-defined]


class OpenAiEngineParams(CompletionEngineParams):
    TAG: ClassVar[str] = "OpenAi"
    ENGINE: ClassVar[str] = "openai"

    params: OpenAiModelParams
    execution_options: ExecutionOptions
    credentials: Optional[ApiKeyCredentials] = None
    endpoint: Optional[str] = None


def _coerce_bedrock_provider(value: Any) -> BedrockProvider:
    if isinstance(value, BedrockProvider):
        return value
    if isinstance(value, str) and value in ("cohere", "meta", "mistral"):
        return BedrockProvider(value)
    if isinstance(value, dict) and len(value) == 1 and isinstance(value.get("other"), str):
        return BedrockProvider(value["other"])
    raise ValueError(f"unknown Bedrock provider {value!r}")


def _dump_bedrock_provider(provider: BedrockProvider) -> Any:
    return {"other": provider.name} if provider.is_other else provider.name


class BedrockEngineParams(CompletionEngineParams):
    TAG: ClassVar[str] = "Bedrock"
    ENGINE: ClassVar[str] = "bedrock"

    credentials: Optional[AwsCredentials] = None
    execution_options: ExecutionOptions
    params: BedrockModelParams
    provider: Annotated[
        BedrockProvider,
        BeforeValidator(_coerce_bedrock_provider),
        PlainSerializer(_dump_bedrock_provider),
    ]

    def provider_name(self) -> str:
        return str(self.provider)

    def model_name(self) -> Optional[str]:
        return self.params.model_id


class AnthropicEngineParams(CompletionEngineParams):
    TAG: ClassVar[str] = "Anthropic"
    ENGINE: ClassVar[str] = "anthropic"

    credentials: Optional[ApiKeyCredentials] = None
    execution_options: ExecutionOptions
    params: AnthropicModelParams


class GeminiEngineParams(CompletionEngineParams):
    TAG: ClassVar[str] = "Gemini"
    ENGINE: ClassVar[str] = "gemini"

    credentials: Optional[ApiKeyCredentials] = None
    execution_options: ExecutionOptions
    params: GeminiModelParams


class ProxyEngineParams(CompletionEngineParams):
    TAG: ClassVar[str] = "Proxy"
    ENGINE: ClassVar[str] = "proxy"

    params: OpenAiModelParams
    execution_options: ExecutionOptions
    credentials: Optional[ApiKeyCredentials] = None


_parse_engine = _tagged_parser(
    CompletionEngineParams,
    (
        OpenAiEngineParams,
        BedrockEngineParams,
        AnthropicEngineParams,
        GeminiEngineParams,
        ProxyEngineParams,
    ),
)

CompletionEngine = Annotated[
    Union[
        OpenAiEngineParams,
        BedrockEngineParams,
        AnthropicEngineParams,
        GeminiEngineParams,
        ProxyEngineParams,
    ],
    BeforeValidator(_parse_engine),
]


class ImageGenerationEngineParams(_Tagged):
    """Settings of the engine that serves an image generation model."""

    NAME: ClassVar[str] = ""

    def engine_name(self) -> str:
        return self.NAME

    def provider_name(self) -> str:
        return self.NAME


class OpenAiImageEngineParams(ImageGenerationEngineParams):
    TAG: ClassVar[str] = "OpenAi"
    NAME: ClassVar[str] = "openai"

    credentials: Optional[ApiKeyCredentials] = None
    endpoint: Optional[str] = None
    model_name: str


class LangdbOpenImageEngineParams(ImageGenerationEngineParams):
    TAG: ClassVar[str] = "LangdbOpen"
    NAME: ClassVar[str] = "langdb_open"

    credentials: Optional[ApiKeyCredentials] = None
    model_name: str


_parse_image_engine = _tagged_parser(
    ImageGenerationEngineParams, (OpenAiImageEngineParams, LangdbOpenImageEngineParams)
)

ImageGenerationEngine = Annotated[
    Union[OpenAiImageEngineParams, LangdbOpenImageEngineParams],
    BeforeValidator(_parse_image_engine),
]


@dataclass(frozen=True)
class BedrockAdditionalModelFields:
    """Model-family specific fields of a Bedrock model; ``kind`` names the family."""

    kind: str
    params: Optional[BaseModel] = None

    def check(self) -> "BedrockAdditionalModelFields":
        """Check the family's value ranges; return self or raise ParamsValidationError."""
        check = getattr(self.params, "check", None)
        if check is not None:
            check()
        return self


_WITH_PARAMS: tuple[tuple[tuple[str, ...], str, type[BaseModel]], ...] = (
    (("a21.jamba-instruct",), "A21Jamba", JambaParams),
    (("a21.j2",), "A21Jurassic", JurassicParams),
)


def parse_additional_model_fields(
    model_id: str, data: Any, managed_provider: Optional[BedrockProvider] = None
) -> BedrockAdditionalModelFields:
    """Read the extra fields of the model family that ``model_id`` belongs to."""
    full_id = f"{managed_provider}.{model_id}" if managed_provider is not None else model_id

    def with_params(kind: str, params_type: type[BaseModel]) -> BedrockAdditionalModelFields:
        return BedrockAdditionalModelFields(kind, params_type.model_validate(data))

    if full_id.startswith("a21.jamba-instruct"):
        return with_params("A21Jamba", JambaParams)
    if full_id.startswith("a21.j2"):
        return with_params("A21Jurassic", JurassicParams)
    if full_id.startswith("amazon.titan-text"):
        return BedrockAdditionalModelFields("AmazonTitan")
    if full_id.startswith(("anthropic.claude-v2", "anthropic.claude-3")):
        return with_params("AnthropicClaude", ClaudeParams)
    if full_id.startswith(("cohere.command-text", "cohere.command-light-text")):
        return with_params("CohereCommand", CohereCommandParams)
    if full_id.startswith("cohere.command-r"):
        return with_params("CohereCommandR", CohereCommandRParams)
    if full_id.startswith(("meta.llama2", "meta.llama3")):
        return BedrockAdditionalModelFields("MetaLlama")
    if full_id.startswith("mistral"):
        return BedrockAdditionalModelFields("Mistral")
    raise ValueError(f"Unknown model_id {full_id}")


class CompletionModelParams(_Base):
    """Engine settings of a completion model and the provider it is served by."""

    engine: CompletionEngine
    provider_name: str
    prompt_name: Optional[str] = None


class CompletionModelDefinition(_Base):
    """Everything needed to run a completion model."""

    name: str
    model_params: CompletionModelParams
    prompt: Prompt
    tools: ModelTools
    db_model: Model

    def model_name(self) -> str:
        """The model the engine calls, or an empty string."""
        return self.model_params.engine.model_name() or ""

    def provider_name(self) -> str:
        """The name the model's provider is known by."""
        engine = self.model_params.engine
        if isinstance(engine, ProxyEngineParams):
            return "langdb_open"
        return engine.provider_name()


_NAMED_ARG_KINDS = ("Value", "Identifier")


class NamedArgValue(_Base):
    """A literal value or an identifier, written as ``{"Value": ...}`` or ``{"Identifier": ...}``."""

    kind: Literal["Value", "Identifier"]
    value: Any = None

    @model_validator(mode="before")
    @classmethod
    def _untag(cls, data: Any) -> Any:
        if isinstance(data, dict) and len(data) == 1:
            tag = next(iter(data))
            if tag in _NAMED_ARG_KINDS:
                return {"kind": tag, "value": data[tag]}
        return data

    @model_validator(mode="after")
    def _identifier_is_text(self) -> "NamedArgValue":
        if self.kind == "Identifier" and not isinstance(self.value, str):
            raise ValueError("an identifier must be a string")
        return self

    @model_serializer(mode="wrap")
    def _tag(self, handler) -> dict[str, Any]:
        return {self.kind: handler(self)["value"]}


class ViewParameter(_Base):
    """A parameter of a view query."""

    name: str
    type: ParamType
    description: Optional[str] = None
    optional: bool = False


class View(_Base):
    """A parameterised query and the schema of its result."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = None
    query: str
    parameters: Annotated[list[ViewParameter], BeforeValidator(loads_if_string)]
    schema_: Annotated[dict[str, str], BeforeValidator(loads_if_string)] = Field(alias="schema")
    project_id: str

    @model_serializer(mode="wrap")
    def _rename_schema(self, handler) -> dict[str, Any]:
        data = handler(self)
        return {("schema" if key == "schema_" else key): value for key, value in data.items()}

    def get_parameter_names(self) -> list[str]:
        return [parameter.name for parameter in self.parameters]


class RoutingModelDefinition(_Base):
    name: str
    view: View
    db_model: Model


class ImageGenerationModelDefinition(_Base):
    name: str
    engine: ImageGenerationEngine
    db_model: Model


_PARENT_TAGS: dict[str, type[_Base]] = {
    "CompletionModel": CompletionModelDefinition,
    "RoutingModel": RoutingModelDefinition,
    "ImageGenerationModel": ImageGenerationModelDefinition,
}


class ParentDefinition(_Base):
    """A completion, routing or image generation model, tagged by its kind."""

    definition: Union[
        CompletionModelDefinition, RoutingModelDefinition, ImageGenerationModelDefinition
    ]

    @model_validator(mode="before")
    @classmethod
    def _untag(cls, data: Any) -> Any:
        if isinstance(data, dict) and len(data) == 1:
            tag, body = next(iter(data.items()))
            variant = _PARENT_TAGS.get(tag)
            if variant is not None:
                return {"definition": variant.model_validate(body)}
        return data

    @model_serializer(mode="wrap")
    def _tag(self, handler) -> dict[str, Any]:
        tag = next(t for t, variant in _PARENT_TAGS.items() if isinstance(self.definition, variant))
        return {tag: handler(self)["definition"]}

    def get_name(self) -> str:
        return self.definition.name

    def get_variables(self) -> list[str]:
        """Prompt variables of a completion model, view parameters of a routing model."""
        if isinstance(self.definition, CompletionModelDefinition):
            return self.definition.prompt.get_variables()
        if isinstance(self.definition, RoutingModelDefinition):
            return self.definition.view.get_parameter_names()
        return []

    def get_db_model(self) -> Model:
        """A copy of the stored model."""
        return self.definition.db_model.model_copy(deep=True)


class CompletionModelOptions(_Base):
    definition: CompletionModelDefinition
    named_args: dict[str, NamedArgValue]
    verbose: bool


class RoutingModelOptions(_Base):
    definition: RoutingModelDefinition
    named_args: dict[str, NamedArgValue]
    verbose: bool


class ParentCompletionOptions(_Base):
    definition: ParentDefinition
    named_args: dict[str, NamedArgValue]
    verbose: bool

    @classmethod
    def from_completion(cls, options: CompletionModelOptions) -> "ParentCompletionOptions":
        return cls(
            definition=ParentDefinition(definition=options.definition.model_copy(deep=True)),
            named_args=dict(options.named_args),
            verbose=options.verbose,
        )

    @classmethod
    def from_routing(cls, options: RoutingModelOptions) -> "ParentCompletionOptions":
        return cls(
            definition=ParentDefinition(definition=options.definition.model_copy(deep=True)),
            named_args=dict(options.named_args),
            verbose=options.verbose,
        )