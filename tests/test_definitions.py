import json

import pytest
from pydantic import ValidationError

from gatewaycore.credentials import ApiKeyCredentials
from gatewaycore.definitions import (
    AnthropicEngineParams,
    BedrockEngineParams,
    CompletionModelDefinition,
    CompletionModelOptions,
    CompletionModelParams,
    GeminiEngineParams,
    ImageGenerationModelDefinition,
    LangdbOpenImageEngineParams,
    Model,
    NamedArgValue,
    OpenAiEngineParams,
    OpenAiImageEngineParams,
    ParentCompletionOptions,
    ParentDefinition,
    Prompt,
    ProxyEngineParams,
    RoutingModelDefinition,
    RoutingModelOptions,
    View,
    parse_additional_model_fields,
)
from gatewaycore.engine import ParamsValidationError, ParamType
from gatewaycore.message import MessageType
from gatewaycore.provider import BedrockProvider


def db_model_data(**overrides):
    data = {
        "name": "m",
        "provider_name": "openai",
        "model_params": {"temperature": 0.5},
        "execution_options": {"max_retries": 2},
        "tools": [{"name": "search", "description": None, "passed_args": []}],
        "model_type": "completions",
    }
    data.update(overrides)
    return data


def completion_definition(engine):
    return CompletionModelDefinition.model_validate(
        {
            "name": "def",
            "model_params": {"engine": engine, "provider_name": "openai"},
            "prompt": Prompt.empty(),
            "tools": [],
            "db_model": db_model_data(),
        }
    )


def view_data():
    return {
        "name": "v",
        "query": "select 1",
        "parameters": '[{"name": "limit", "type": "Int"}]',
        "schema": '{"a": "String"}',
        "project_id": "p",
    }


def test_model_accepts_json_text_fields():
    as_objects = Model.model_validate(db_model_data())
    as_text = Model.model_validate(
        db_model_data(
            model_params=json.dumps({"temperature": 0.5}),
            execution_options=json.dumps({"max_retries": 2}),
            tools=json.dumps([{"name": "search", "description": None, "passed_args": []}]),
        )
    )
    assert as_text == as_objects
    assert as_text.tools.contains("search")


def test_model_rejects_bad_json_text():
    with pytest.raises(ValidationError):
        Model.model_validate(db_model_data(model_params="{not json"))


def test_model_credentials_from_text():
    model = Model.model_validate(db_model_data(credentials='{"api_key": "placeholder"}'))
    assert model.credentials == ApiKeyCredentials(api_key="placeholder")
    assert model.model_dump(mode="json")["credentials"] == {"api_key": "placeholder"}


def test_model_round_trip():
    model = Model.model_validate(db_model_data(model_type="Completions"))
    dumped = model.model_dump(mode="json")
    assert dumped["model_type"] == "completions"
    assert Model.model_validate(dumped) == model


def test_prompt_new_collects_variables():
    prompt = Prompt.new("p", "Hello {{ name }}, you are {{ age }}")
    assert prompt.messages[0].type == MessageType.SYSTEM_MESSAGE
    assert prompt.messages[0].parameters == {"name", "age"}
    assert sorted(prompt.get_variables()) == ["age", "name"]


def test_prompt_render_and_empty():
    assert Prompt.render("Hello {{ name }}", {"name": "World"}) == "Hello World"
    empty = Prompt.empty()
    assert empty.name == "empty"
    assert empty.get_variables() == []


def test_prompt_messages_from_text():
    text = json.dumps([{"type": "human", "msg": "hi", "parameters": []}])
    prompt = Prompt.model_validate({"name": "p", "messages": text})
    assert prompt.messages[0].type == MessageType.HUMAN_MESSAGE
    assert prompt.messages[0].wired is False


@pytest.mark.parametrize(
    "engine, engine_name, provider_name, model",
    [
        ({"OpenAi": {"params": {"model": "gpt-4o"}, "execution_options": {}}}, "openai", "openai", "gpt-4o"),
        (
            {"Bedrock": {"params": {"model_id": "meta.llama3"}, "execution_options": {}, "provider": "meta"}},
            "bedrock",
            "meta",
            "meta.llama3",
        ),
        ({"Anthropic": {"params": {"model": "claude-x"}, "execution_options": {}}}, "anthropic", "anthropic", "claude-x"),
        ({"Gemini": {"params": {"model_name": "gem"}, "execution_options": {}}}, "gemini", "gemini", "gem"),
        ({"Proxy": {"params": {"model_id": "px"}, "execution_options": {}}}, "proxy", "proxy", "px"),
    ],
)
def test_engine_names(engine, engine_name, provider_name, model):
    params = CompletionModelParams.model_validate({"engine": engine, "provider_name": "x"})
    assert params.engine.engine_name() == engine_name
    assert params.engine.provider_name() == provider_name
    assert params.engine.model_name() == model


def test_engine_variant_types_and_round_trip():
    params = CompletionModelParams.model_validate(
        {"engine": {"Gemini": {"params": {}, "execution_options": {}}}, "provider_name": "gemini"}
    )
    assert isinstance(params.engine, GeminiEngineParams)
    dumped = params.model_dump(mode="json")
    assert list(dumped["engine"]) == ["Gemini"]
    again = CompletionModelParams.model_validate(dumped)
    assert again.model_dump(mode="json") == dumped


def test_unknown_engine_tag_rejected():
    with pytest.raises(ValidationError):
        CompletionModelParams.model_validate({"engine": {"Nope": {}}, "provider_name": "x"})


def test_bedrock_other_provider():
    engine = BedrockEngineParams.model_validate(
        {"params": {}, "execution_options": {}, "provider": {"other": "acme"}}
    )
    assert engine.provider_name() == "acme"
    assert engine.model_dump(mode="json")["Bedrock"]["provider"] == {"other": "acme"}


def test_definition_model_and_provider_name():
    openai = completion_definition({"OpenAi": {"params": {"model": "gpt-4o"}, "execution_options": {}}})
    assert openai.model_name() == "gpt-4o"
    assert openai.provider_name() == "openai"

    proxy = completion_definition({"Proxy": {"params": {}, "execution_options": {}}})
    assert isinstance(proxy.model_params.engine, ProxyEngineParams)
    assert proxy.model_name() == ""
    assert proxy.provider_name() == "langdb_open"

    bedrock = completion_definition(
        {"Bedrock": {"params": {}, "execution_options": {}, "provider": "cohere"}}
    )
    assert bedrock.provider_name() == "cohere"


def test_anthropic_engine_instance():
    engine = AnthropicEngineParams.model_validate({"params": {}, "execution_options": {}})
    assert engine.model_name() is None
    assert isinstance(OpenAiEngineParams.model_validate(
        {"OpenAi": {"params": {}, "execution_options": {}}}
    ), OpenAiEngineParams)


def test_image_engine_names():
    openai = OpenAiImageEngineParams(model_name="dall")
    langdb = LangdbOpenImageEngineParams(model_name="img")
    assert openai.engine_name() == "openai"
    assert openai.provider_name() == "openai"
    assert langdb.engine_name() == "langdb_open"
    assert langdb.provider_name() == "langdb_open"


@pytest.mark.parametrize(
    "model_id, provider, kind",
    [
        ("a21.jamba-instruct-v1", None, "A21Jamba"),
        ("a21.j2-ultra", None, "A21Jurassic"),
        ("amazon.titan-text-express", None, "AmazonTitan"),
        ("anthropic.claude-3-haiku", None, "AnthropicClaude"),
        ("cohere.command-light-text-v14", None, "CohereCommand"),
        ("cohere.command-r-plus", None, "CohereCommandR"),
        ("meta.llama3-8b", None, "MetaLlama"),
        ("mistral.large", None, "Mistral"),
        ("llama2-13b", BedrockProvider.META, "MetaLlama"),
        ("command-r", BedrockProvider.COHERE, "CohereCommandR"),
    ],
)
def test_additional_model_fields_kind(model_id, provider, kind):
    assert parse_additional_model_fields(model_id, {}, provider).kind == kind


def test_additional_model_fields_params_and_check():
    fields = parse_additional_model_fields("cohere.command-r", {"top_k": 10}, None)
    assert fields.params.k == 10
    assert fields.check() is fields

    bad = parse_additional_model_fields("a21.j2-mid", {"presence_penalty": 6.0}, None)
    with pytest.raises(ParamsValidationError):
        bad.check()


def test_additional_model_fields_unknown():
    with pytest.raises(ValueError, match="Unknown model_id cohere.embed"):
        parse_additional_model_fields("embed", {}, BedrockProvider.COHERE)


def test_named_arg_value_round_trip():
    value = NamedArgValue.model_validate({"Value": 3})
    ident = NamedArgValue.model_validate({"Identifier": "col"})
    assert value.kind == "Value" and value.value == 3
    assert ident.model_dump() == {"Identifier": "col"}
    assert NamedArgValue.model_validate(value.model_dump()) == value
    with pytest.raises(ValidationError):
        NamedArgValue.model_validate({"Identifier": 5})


def test_view_from_text_fields():
    view = View.model_validate(view_data())
    assert view.get_parameter_names() == ["limit"]
    assert view.parameters[0].type == ParamType.INT
    assert view.parameters[0].optional is False
    dumped = view.model_dump(mode="json")
    assert dumped["schema"] == {"a": "String"}
    assert View.model_validate(dumped) == view


def test_parent_definition_completion():
    definition = completion_definition({"OpenAi": {"params": {"model": "gpt-4o"}, "execution_options": {}}})
    definition = definition.model_copy(update={"prompt": Prompt.new("p", "Hi {{ who }}")})
    parent = ParentDefinition(definition=definition)
    assert parent.get_name() == "def"
    assert parent.get_variables() == ["who"]
    assert parent.get_db_model() == definition.db_model
    dumped = parent.model_dump(mode="json")
    assert list(dumped) == ["CompletionModel"]
    again = ParentDefinition.model_validate(dumped)
    assert isinstance(again.definition, CompletionModelDefinition)
    assert again.get_variables() == ["who"]


def test_parent_definition_routing_and_image():
    routing = ParentDefinition.model_validate(
        {"RoutingModel": {"name": "r", "view": view_data(), "db_model": db_model_data()}}
    )
    assert isinstance(routing.definition, RoutingModelDefinition)
    assert routing.get_variables() == ["limit"]

    image = ParentDefinition.model_validate(
        {
            "ImageGenerationModel": {
                "name": "img",
                "engine": {"LangdbOpen": {"model_name": "x"}},
                "db_model": db_model_data(),
            }
        }
    )
    assert isinstance(image.definition, ImageGenerationModelDefinition)
    assert image.get_name() == "img"
    assert image.get_variables() == []
    assert image.definition.engine.engine_name() == "langdb_open"


def test_parent_completion_options():
    definition = completion_definition({"OpenAi": {"params": {}, "execution_options": {}}})
    options = CompletionModelOptions(
        definition=definition,
        named_args={"a": NamedArgValue(kind="Value", value=1)},
        verbose=True,
    )
    parent = ParentCompletionOptions.from_completion(options)
    assert parent.verbose is True
    assert parent.named_args == options.named_args
    assert parent.definition.definition == definition

    routing = RoutingModelDefinition.model_validate(
        {"name": "r", "view": view_data(), "db_model": db_model_data()}
    )
    parent = ParentCompletionOptions.from_routing(
        RoutingModelOptions(definition=routing, named_args={}, verbose=False)
    )
    assert parent.definition.get_name() == "r"
    assert parent.verbose is False