"""Guards applied to requests and responses, their results and their errors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from http import HTTPStatus
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_serializer,
    model_validator,
)

from gatewaycore.http import GuardValidationError, GuardValidationFailed


class _Model(BaseModel):
    """Base model that drops listed None fields and renames fields on output."""

    model_config = ConfigDict(protected_namespaces=(), populate_by_name=True)

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset()
    RENAMED: ClassVar[dict[str, str]] = {}

    @model_serializer(mode="wrap")
    def _shape(self, handler) -> dict[str, Any]:
        data = handler(self)
        omit = type(self).OMIT_IF_NONE
        renamed = type(self).RENAMED
        return {
            renamed.get(key, key): value
            for key, value in data.items()
            if not (value is None and key in omit)
        }


class GuardModel(_Model):
    """The model acting as judge for an LLM guard."""

    model: str = "gpt-4o"
    system_prompt: Optional[str] = None
    user_prompt_template: str


# --- results ----------------------------------------------------------------


class BooleanResult(_Model):
    """Pass or fail."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"confidence"})

    type: Literal["boolean"] = "boolean"
    passed: bool
    confidence: Optional[float] = None


class TextResult(_Model):
    """A text observation together with a verdict."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset({"confidence"})

    type: Literal["text"] = "text"
    text: str
    passed: bool
    confidence: Optional[float] = None


class JsonResult(_Model):
    """A structured result together with a verdict."""

    RENAMED: ClassVar[dict[str, str]] = {"schema_": "schema"}

    type: Literal["json"] = "json"
    schema_: Any = Field(alias="schema")
    passed: bool


GuardResult = Annotated[
    Union[BooleanResult, TextResult, JsonResult], Field(discriminator="type")
]

_RESULTS: TypeAdapter = TypeAdapter(GuardResult)


def parse_guard_result(data: Any) -> Union[BooleanResult, TextResult, JsonResult]:
    """Read a result tagged by its ``type``."""
    if isinstance(data, (BooleanResult, TextResult, JsonResult)):
        return data
    return _RESULTS.validate_python(data)


# --- errors -----------------------------------------------------------------


class GuardError(Exception):
    """A guard could not be applied, or did not pass."""

    STATUS: ClassVar[HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR

    def status_code(self) -> int:
        return int(self.STATUS)

    def error_response(self) -> tuple[int, dict[str, Any]]:
        """The HTTP status and JSON body that report this error."""
        return self.status_code(), {"error": str(self)}


class GuardNotFoundError(GuardError):
    STATUS = HTTPStatus.NOT_FOUND

    def __init__(self, guard_id: str) -> None:
        super().__init__(f"Guard not found: {guard_id}")
        self.guard_id = guard_id

    def error_response(self) -> tuple[int, dict[str, Any]]:
        return self.status_code(), {"error": "Guard not found", "guard_id": self.guard_id}


class GuardEvaluationError(GuardError):
    STATUS = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(f"Guard evaluation error: {message}")
        self.message = message

    def error_response(self) -> tuple[int, dict[str, Any]]:
        return self.status_code(), {"error": "Guard evaluation error", "message": self.message}


class OutputGuardrailsNotSupportedInStreaming(GuardError):
    STATUS = HTTPStatus.BAD_REQUEST

    def __init__(self) -> None:
        super().__init__("Output guardrails not supported in streaming")


class GuardNotPassedError(GuardError):
    def __init__(self, guard_id: str, result: Union[BooleanResult, TextResult, JsonResult]) -> None:
        super().__init__(f"Guard '{guard_id}' not passed")
        self.guard_id = guard_id
        self.result = result

    def status_code(self) -> int:
        return int(GuardValidationFailed.status_code())

    def error_response(self) -> tuple[int, dict[str, Any]]:
        error = GuardValidationError(str(self), self.guard_id, self.result.model_dump())
        return self.status_code(), error.to_dict()


# --- guards -----------------------------------------------------------------


class GuardStage(str, Enum):
    """When a guard is applied."""

    INPUT = "input"
    OUTPUT = "output"


class GuardAction(str, Enum):
    """What a guard does with its verdict."""

    OBSERVE = "observe"
    VALIDATE = "validate"


class GuardConfig(_Model):
    """Settings shared by every kind of guard."""

    OMIT_IF_NONE: ClassVar[frozenset[str]] = frozenset(
        {"description", "user_defined_parameters"}
    )

    id: str
    name: str
    template_id: str
    description: Optional[str] = None
    stage: GuardStage
    action: GuardAction
    user_defined_parameters: Optional[Any] = None


_CONFIG_KEYS = tuple(GuardConfig.model_fields)


class GuardExample(_Model):
    """A labelled example for a dataset guard."""

    text: str
    label: bool
    embedding: Optional[list[float]] = None


class ExamplesSource(_Model):
    examples: list[GuardExample]


class NamedSource(_Model):
    source: str


class ManagedSource(_Model):
    config: Any


DatasetSource = Union[ExamplesSource, NamedSource, ManagedSource]

_DATASET_SOURCES = (ExamplesSource, NamedSource, ManagedSource)


def parse_dataset_source(data: Any) -> DatasetSource:
    """Read examples, a source name or a managed config, whichever fits first."""
    if isinstance(data, _DATASET_SOURCES):
        return data
    for variant in _DATASET_SOURCES:
        try:
            return variant.model_validate(data)
        except ValidationError:
            continue
    raise ValueError("data did not match any variant of untagged enum DatasetSource")


class Guard(_Model):
    """A guard; the shared settings sit in ``config``, flattened on the wire."""

    TYPE: ClassVar[str] = ""

    config: GuardConfig

    @model_validator(mode="before")
    @classmethod
    def _nest_config(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "config" in data:
            return data
        out = {k: v for k, v in data.items() if k not in _CONFIG_KEYS and k != "type"}
        out["config"] = {k: data[k] for k in _CONFIG_KEYS if k in data}
        return out

    def stage(self) -> GuardStage:
        return self.config.stage

    def action(self) -> GuardAction:
        return self.config.action

    def id(self) -> str:
        return self.config.id

    def name(self) -> str:
        return self.config.name

    def parameters(self) -> Optional[Any]:
        return self.config.user_defined_parameters

    def set_parameters(self, parameters: Any) -> None:
        self.config.user_defined_parameters = parameters

    def template_id(self) -> str:
        return self.config.template_id

    def type(self) -> str:
        return self.TYPE

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form, tagged by ``type`` with the settings flattened."""
        body = self.model_dump(exclude={"config"})
        return {"type": self.TYPE, **self.config.model_dump(), **body}


class SchemaGuard(Guard):
    TYPE: ClassVar[str] = "schema"

    user_defined_schema: Any


class LlmJudgeGuard(Guard):
    TYPE: ClassVar[str] = "llm_judge"

    model: Optional[GuardModel] = None


class DatasetGuard(Guard):
    TYPE: ClassVar[str] = "dataset"
    RENAMED: ClassVar[dict[str, str]] = {"schema_": "schema"}

    embedding_model: str
    threshold: float
    dataset: Annotated[DatasetSource, BeforeValidator(parse_dataset_source)]
    schema_: Any = Field(alias="schema")


class RegexGuard(Guard):
    TYPE: ClassVar[str] = "regex"
    RENAMED: ClassVar[dict[str, str]] = {"regex_parameters": "parameters"}

    regex_parameters: Any = Field(alias="parameters")


class WordCountGuard(Guard):
    TYPE: ClassVar[str] = "word_count"


class PartnerGuard(Guard):
    TYPE: ClassVar[str] = "partner"


_GUARD_TYPES: dict[str, type[Guard]] = {
    variant.TYPE: variant
    for variant in (SchemaGuard, LlmJudgeGuard, DatasetGuard, RegexGuard, WordCountGuard, PartnerGuard)
}


def parse_guard(data: Any) -> Guard:
    """Read a guard tagged by its ``type``."""
    if isinstance(data, Guard):
        return data
    if not isinstance(data, dict) or "type" not in data:
        raise ValueError("missing field `type`")
    variant = _GUARD_TYPES.get(data["type"])
    if variant is None:
        raise ValueError(f"unknown variant `{data['type']}`")
    return variant.model_validate(data)


class GuardTemplate(_Model):
    """A template that guards are made from."""

    name: str
    description: str
    type: str
    tags: list[str]
    parameters: Any


class DatasetLoader(ABC):
    """Loads the examples of a named dataset."""

    @abstractmethod
    async def load(self, source: str) -> list[GuardExample]:
        """The examples of ``source``."""