"""Model providers, prices and the models they make available."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, ClassVar, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer, ValidationError

from gatewaycore.engine import ModelType

_BEDROCK_KNOWN = frozenset({"cohere", "meta", "mistral"})


class BedrockProvider:
    """The vendor of a Bedrock model; unknown vendors keep their given name."""

    __slots__ = ("name", "is_other")

    COHERE: ClassVar[BedrockProvider]
    META: ClassVar[BedrockProvider]
    MISTRAL: ClassVar[BedrockProvider]

    def __init__(self, name: str) -> None:
        lowered = name.lower()
        if lowered in _BEDROCK_KNOWN:
            self.name = lowered
            self.is_other = False
        else:
            self.name = name
            self.is_other = True

    @classmethod
    def from_model_name(cls, model_id: str) -> "BedrockProvider":
        """The vendor named before the first dot of a model id."""
        return cls(model_id.split(".")[0].lower())

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"BedrockProvider({self.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BedrockProvider):
            return NotImplemented
        return (self.is_other, self.name) == (other.is_other, other.name)

    def __hash__(self) -> int:
        return hash((self.is_other, self.name))


BedrockProvider.COHERE = BedrockProvider("cohere")
BedrockProvider.META = BedrockProvider("meta")
BedrockProvider.MISTRAL = BedrockProvider("mistral")

_INFERENCE_KNOWN = frozenset({"openai", "anthropic", "gemini", "bedrock"})


class InferenceModelProvider:
    """A provider that serves inference; names are lower-cased."""

    __slots__ = ("name", "is_proxy")

    OPENAI: ClassVar[InferenceModelProvider]
    ANTHROPIC: ClassVar[InferenceModelProvider]
    GEMINI: ClassVar[InferenceModelProvider]
    BEDROCK: ClassVar[InferenceModelProvider]

    def __init__(self, name: str) -> None:
        self.name = name.lower()
        self.is_proxy = self.name not in _INFERENCE_KNOWN

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"InferenceModelProvider({self.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InferenceModelProvider):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)


InferenceModelProvider.OPENAI = InferenceModelProvider("openai")
InferenceModelProvider.ANTHROPIC = InferenceModelProvider("anthropic")
InferenceModelProvider.GEMINI = InferenceModelProvider("gemini")
InferenceModelProvider.BEDROCK = InferenceModelProvider("bedrock")


class EmbeddingModelPrice(BaseModel):
    per_input_token: float
    valid_from: Optional[date] = None


class CompletionModelPrice(BaseModel):
    per_input_token: float
    per_output_token: float
    valid_from: Optional[date] = None


class ImageGenerationPrice(BaseModel):
    type_prices: Optional[dict[str, dict[str, float]]] = None
    mp_price: Optional[float] = None
    valid_from: Optional[date] = None


ModelPrice = Union[CompletionModelPrice, EmbeddingModelPrice, ImageGenerationPrice]

_PRICE_VARIANTS = (CompletionModelPrice, EmbeddingModelPrice, ImageGenerationPrice)


def parse_model_price(data: Any) -> ModelPrice:
    """Read a price of a completion, embedding or image model, whichever fits first."""
    if isinstance(data, _PRICE_VARIANTS):
        return data
    for variant in _PRICE_VARIANTS:
        try:
            return variant.model_validate(data)
        except ValidationError:
            continue
    raise ValueError("data did not match any variant of untagged enum ModelPrice")


def _coerce_price(value: Any) -> Any:
    return None if value is None else parse_model_price(value)


def _coerce_model_type(value: Any) -> Any:
    return None if value is None else ModelType.parse(value)


def _coerce_provider(value: Any) -> InferenceModelProvider:
    if isinstance(value, InferenceModelProvider):
        return value
    if isinstance(value, str):
        return InferenceModelProvider(value)
    raise ValueError("expected a provider name")


class AvailableModel(BaseModel):
    """A model offered by a provider, with its price when known."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    price: Annotated[Optional[ModelPrice], BeforeValidator(_coerce_price)] = None
    details: Optional[str] = None
    model_type: Annotated[Optional[ModelType], BeforeValidator(_coerce_model_type)] = None
    provider: Annotated[
        InferenceModelProvider,
        BeforeValidator(_coerce_provider),
        PlainSerializer(str, return_type=str),
    ]