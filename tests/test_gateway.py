import json

import pytest

from gatewaycore.gateway import (
    ChatCompletionChunk,
    ChatCompletionChunkChoice,
    ChatCompletionDelta,
    ChatCompletionMessage,
    ChatCompletionRequest,
    ChatCompletionRequestWithTools,
    CompletionModelUsage,
    Content,
    ContentType,
    CostCalculationResult,
    CostCalculator,
    CostCalculatorError,
    CreateEmbeddingRequest,
    CreateImageRequest,
    EncodingFormat,
    Extra,
    GuardWithParameters,
    ImageGenerationModelUsage,
    ImageQuality,
    ImageResponseFormat,
    ImageSize,
    ImageUrl,
    InMemoryTransport,
    InputAudio,
    McpDefinition,
    ModelNotFoundError,
    MPPrice,
    Property,
    RequestUser,
    TypePrice,
    content_as_string,
    parse_usage,
)


def test_contents():
    message = ChatCompletionMessage(
        role="user",
        content=[
            Content(type=ContentType.TEXT, text="Hello"),
            Content(type=ContentType.IMAGE_URL, image_url=ImageUrl(url="https://example.com/image.jpg")),
            Content(type=ContentType.INPUT_AUDIO, audio=InputAudio(data="audio data", format="mp3")),
        ],
    )
    dumped = message.model_dump(mode="json")["content"]
    assert dumped == [
        {"type": "text", "text": "Hello", "image_url": None, "audio": None},
        {"type": "image_url", "text": None, "image_url": {"url": "https://example.com/image.jpg"}, "audio": None},
        {"type": "input_audio", "text": None, "image_url": None, "audio": {"data": "audio data", "format": "mp3"}},
    ]
    back = ChatCompletionMessage.model_validate_json(message.model_dump_json())
    assert [c.type for c in back.content] == [ContentType.TEXT, ContentType.IMAGE_URL, ContentType.INPUT_AUDIO]


def test_image_size_serialization():
    assert str(ImageSize.SIZE_256X256) == "256x256"
    assert str(ImageSize(800, 600)) == "800x600"
    request = CreateImageRequest(prompt="a cat", model="dall-e", size=ImageSize(800, 600))
    assert json.loads(request.model_dump_json())["size"] == "800x600"


def test_image_size_deserialization():
    assert ImageSize.parse("256x256") == ImageSize.SIZE_256X256
    assert ImageSize.parse("800x600") == ImageSize(800, 600)
    assert ImageSize.parse("800x600").dimensions() == (800, 600)
    for bad in ("invalid", "800x", "x600", "axb"):
        with pytest.raises(ValueError):
            ImageSize.parse(bad)


def test_image_request_parses_size_string():
    request = CreateImageRequest.model_validate(
        {"prompt": "p", "model": "m", "size": "1024x1792", "response_format": "B64Json", "quality": "hd"}
    )
    assert request.size == ImageSize.SIZE_1024X1792
    assert request.response_format is ImageResponseFormat.B64_JSON
    assert str(request.quality) == "hd"
    assert request.model_dump(mode="json") == {
        "prompt": "p", "model": "m", "quality": "hd", "response_format": "B64Json", "size": "1024x1792",
    }
    with pytest.raises(ValueError):
        CreateImageRequest.model_validate({"prompt": "p", "model": "m", "size": "800x"})


def test_deserialize_nested_property():
    source = """
        {
            "description": "2D array",
            "type": "array",
            "items": {
                "type": "array",
                "items": {
                    "type": ["string", "number", "boolean", "null"],
                    "description": "A single value"
                }
            }
        }
    """
    prop = Property.model_validate_json(source)
    assert prop.type == "array"
    assert prop.items.type == "array"
    assert prop.items.items.type == ["string", "number", "boolean", "null"]
    assert prop.model_dump(mode="json") == {
        "type": "array",
        "description": "2D array",
        "items": {
            "type": "array",
            "items": {"type": ["string", "number", "boolean", "null"], "description": "A single value"},
        },
    }


def test_request_omits_unset_options_and_with_model():
    request = ChatCompletionRequest(model="a", messages=[ChatCompletionMessage.new_text("user", "hi")])
    assert request.model_dump(mode="json") == {
        "model": "a",
        "messages": [{"role": "user", "content": "hi", "tool_calls": None, "refusal": None, "tool_call_id": None}],
    }
    assert request.with_model("b").model == "b"
    assert ChatCompletionRequest.model_validate({"model": "x"}).messages == []


def test_content_as_string():
    assert content_as_string("hello") == "hello"
    assert content_as_string([Content(type=ContentType.TEXT, text="x")]) is None
    assert content_as_string(None) is None


def test_request_with_tools_flattened_round_trip():
    body = {
        "model": "gpt",
        "messages": [{"role": "user", "content": "hi"}],
        "mcp_servers": [{"type": "sse", "server_url": "http://localhost:8000/sse"}],
        "router": {"type": "fallback", "targets": [{"model": "a"}]},
        "extra": {"user": {"user_id": "u1", "tags": ["gold"]}, "guards": ["g1", {"id": "g2", "parameters": {"x": 1}}]},
        "thinking": {"type": "enabled", "budget_tokens": 1024},
        "top_k": 5,
    }
    request = ChatCompletionRequestWithTools.model_validate(body)
    assert request.request.model == "gpt"
    assert request.provider_specific.top_k == 5
    assert request.provider_specific.thinking.budget_tokens == 1024
    assert request.router.strategy == {"type": "fallback"}
    assert request.extra.user.id == "u1"
    assert request.extra.user.tiers == ["gold"]
    assert request.extra.guards[0] == "g1"
    assert request.extra.guards[1] == GuardWithParameters(id="g2", parameters={"x": 1})
    assert request.mcp_servers[0].server_name() == "http://localhost:8000/sse"

    dumped = request.model_dump(mode="json")
    assert dumped["top_k"] == 5
    assert "temperature" not in dumped
    assert "variables" not in dumped
    assert dumped["router"] == {"type": "fallback", "targets": [{"model": "a"}]}
    assert dumped["mcp_servers"][0] == {
        "filter": None, "type": "sse", "server_url": "http://localhost:8000/sse", "headers": {}, "env": None,
    }
    assert ChatCompletionRequestWithTools.model_validate(dumped).model_dump(mode="json") == dumped


def test_request_with_tools_without_provider_options():
    request = ChatCompletionRequestWithTools.model_validate({"model": "m"})
    dumped = request.model_dump(mode="json")
    assert dumped == {"model": "m", "messages": []}


def test_mcp_definitions():
    memory = McpDefinition.model_validate({"type": "in-memory"})
    assert isinstance(memory.transport, InMemoryTransport)
    assert memory.server_name() == "langdb"
    assert memory.env() is None
    assert memory.filter is None

    ws = McpDefinition.model_validate(
        {"type": "ws", "server_url": "ws://localhost:9000", "env": {"K": "V"}, "filter": [{"name": "search"}]}
    )
    assert ws.server_name() == "ws://localhost:9000"
    assert ws.env() == {"K": "V"}
    assert [s.name for s in ws.filter] == ["search"]

    with pytest.raises(ValueError):
        McpDefinition.model_validate({"type": "carrier-pigeon"})


def test_extra_skips_empty_fields_and_user_aliases():
    assert Extra().model_dump(mode="json") == {}
    user = RequestUser.model_validate({"user_name": "ann", "user_tags": ["t"]})
    assert user.model_dump(mode="json") == {"name": "ann", "tiers": ["t"]}


def test_chunk_omits_missing_usage():
    chunk = ChatCompletionChunk(
        id="c", object="chat.completion.chunk", created=1, model="m",
        choices=[ChatCompletionChunkChoice(index=0, delta=ChatCompletionDelta(content="x"))],
    )
    dumped = chunk.model_dump(mode="json")
    assert "usage" not in dumped
    assert dumped["choices"][0] == {"index": 0, "delta": {"content": "x"}, "finish_reason": None, "logprobs": None}


def test_parse_usage():
    completion = parse_usage({"input_tokens": 1, "output_tokens": 2, "total_tokens": 3})
    assert isinstance(completion, CompletionModelUsage)
    assert completion.total_tokens == 3
    assert completion.prompt_tokens_details is None

    image = parse_usage({"quality": "hd", "size": [1024, 1024], "images_count": 1, "steps_count": 0})
    assert isinstance(image, ImageGenerationModelUsage)
    assert image.size == (1024, 1024)

    with pytest.raises(ValueError):
        parse_usage({})
    with pytest.raises(ValueError):
        parse_usage({"input_tokens": -1, "output_tokens": 2, "total_tokens": 3})


def test_cost_result_to_dict():
    plain = CostCalculationResult(cost=1.5, per_input_token=0.1, per_output_token=0.2)
    assert plain.to_dict() == {"cost": 1.5, "per_input_token": 0.1, "per_output_token": 0.2}
    typed = CostCalculationResult(0.04, 0.0, 0.0, TypePrice(size="1024x1024", quality="hd", per_image=0.04))
    assert typed.to_dict()["per_image_cost"] == {
        "TypePrice": {"size": "1024x1024", "quality": "hd", "per_image": 0.04}
    }
    assert CostCalculationResult(1.0, 0.0, 0.0, MPPrice(0.5)).to_dict()["per_image_cost"] == {"MPPrice": 0.5}


def test_cost_errors():
    assert str(CostCalculatorError("bad")) == "Calcualtion error: bad"
    assert str(ModelNotFoundError()) == "Model not found"
    assert isinstance(ModelNotFoundError(), CostCalculatorError)


class _FixedCalculator(CostCalculator):
    async def calculate_cost(self, model_name, provider_name, usage):
        if model_name != "known":
            raise ModelNotFoundError()
        return CostCalculationResult(cost=2.0, per_input_token=1.0, per_output_token=1.0)


@pytest.mark.asyncio
async def test_cost_calculator_subclass():
    usage = parse_usage({"input_tokens": 1, "output_tokens": 1, "total_tokens": 2})
    result = await _FixedCalculator().calculate_cost("known", "openai", usage)
    assert result.to_dict()["cost"] == 2.0
    with pytest.raises(ModelNotFoundError):
        await _FixedCalculator().calculate_cost("other", "openai", usage)
    with pytest.raises(TypeError):
        CostCalculator()


def test_embedding_request_defaults():
    request = CreateEmbeddingRequest.model_validate({"model": "m", "input": ["a", "b"]})
    assert request.encoding_format is EncodingFormat.FLOAT
    assert request.model_dump(mode="json") == {
        "model": "m", "input": ["a", "b"], "dimensions": None, "encoding_format": "float",
    }
    with pytest.raises(ValueError):
        CreateEmbeddingRequest.model_validate({"model": "m", "input": "a", "dimensions": 70000})


def test_image_quality_str():
    assert ImageQuality.SD.__str__() == "standard"
    assert ImageQuality.HD.__str__() == "hd"