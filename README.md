# gatewaycore

Data types for an AI gateway that sits in front of several LLM providers
(OpenAI, Anthropic, Gemini, Bedrock and OpenAI-compatible proxies). The types
are pydantic models, dataclasses and enums that read and write the JSON shapes
the gateway exchanges.

## Modules

- `gatewaycore.gateway`: chat completion requests, responses and stream
  chunks, MCP server definitions, embedding and image generation requests,
  usage records (`parse_usage`), cost results and the abstract
  `CostCalculator`, and `ImageSize`.
- `gatewaycore.engine`: `EngineType`, `EngineFeature`, `ModelType`,
  `ParamType`, `ModelTools`, and the model parameters of each provider
  (`OpenAiModelParams`, `BedrockModelParams`, `AnthropicModelParams`,
  `GeminiModelParams` and the Bedrock family parameters). Their `check()`
  methods raise `ParamsValidationError` for values out of range.
- `gatewaycore.definitions`: stored `Model`s, `Prompt`s (jinja2 templates),
  `View`s, completion, routing and image generation model definitions,
  tagged engine settings and `parse_additional_model_fields` for Bedrock
  model families.
- `gatewaycore.provider`: `BedrockProvider`, `InferenceModelProvider`, model
  prices (`parse_model_price`) and `AvailableModel`.
- `gatewaycore.credentials`: API key, API key with endpoint, AWS and hosted
  credentials (`parse_credentials`, `dump_credentials`), and `GatewayTenant`.
- `gatewaycore.db_connection`: ClickHouse connection settings with optional
  SSH tunnel (`parse_connection_details`, `dump_connection_details`).
- `gatewaycore.guardrails`: guards of every kind (`parse_guard`), guard
  results (`parse_guard_result`), dataset sources, and the `GuardError`
  family with the HTTP status and body each one reports.
- `gatewaycore.guard_evaluation`: the abstract `Evaluator` and
  `GuardPartner`, and the `GuardPartnerError` family.
- `gatewaycore.http`: the custom status 446 (`GuardValidationFailed`) and
  `GuardValidationError`.
- `gatewaycore.threads`: message threads, stored messages and message
  requests; content parts are written as `[type, value, options]`.
- `gatewaycore.message`: prompt messages and their `MessageType`.
- `gatewaycore.embed`: OpenAI embedding parameters with a dimensions check.
- `gatewaycore.image`: image generation responses.
- `gatewaycore.usage`: float counters kept in memory per hour, day, month or
  in total, and the metric summaries built from them.
- `gatewaycore.jsonfield`: `loads_if_string`, for fields that may hold JSON
  inline or as JSON text.

## Installation

```
pip install gatewaycore
```

## Examples

Parse an image size:

```python
from gatewaycore.gateway import ImageSize

size = ImageSize.parse("800x600")
print(size.dimensions())   # (800, 600)
print(str(size))           # 800x600
```

A malformed size such as `"800x"` raises `ValueError`.

Read credentials from decoded JSON:

```python
from gatewaycore.credentials import parse_credentials, dump_credentials

creds = parse_credentials({"api_key": "placeholder"})
print(dump_credentials(creds))   # {'api_key': 'placeholder'}
```

Check which features an engine supports:

```python
from gatewaycore.engine import EngineType, EngineFeature

engine = EngineType.parse("OpenAI")
print(engine.supports(EngineFeature.EMBEDDINGS))   # True
print(EngineType.parse("my-proxy"))                # my-proxy
```

Collect and render prompt variables:

```python
from gatewaycore.definitions import Prompt

prompt = Prompt.new("greeting", "Hello {{ name }}")
print(prompt.get_variables())                            # ['name']
print(Prompt.render("Hello {{ name }}", {"name": "Ada"}))  # Hello Ada
```

Read a guard and report a failed guard:

```python
from gatewaycore.guardrails import BooleanResult, GuardNotPassedError, parse_guard

guard = parse_guard({
    "type": "word_count",
    "id": "g1",
    "name": "Length",
    "template_id": "t1",
    "stage": "input",
    "action": "validate",
})
print(guard.type())          # word_count
print(guard.stage().value)   # input

status, body = GuardNotPassedError("g1", BooleanResult(passed=False)).error_response()
print(status)                # 446
```

Count usage in memory:

```python
import asyncio
from gatewaycore.usage import InMemoryStorage, LimitPeriod

async def run():
    storage = InMemoryStorage()
    await storage.increment_and_get_value(LimitPeriod.TOTAL, "openai", "gpt-4o:requests", 1.0)
    print(storage.get_value(LimitPeriod.TOTAL, "openai", "gpt-4o:requests"))   # 1.0

asyncio.run(run())
```

`increment_and_get_value` must run inside an event loop: counters of the
hour, day and month periods are dropped by a timer on that loop when their
period refreshes.

## What the package does not do

It holds types only. It has no HTTP server, no command-line program, and no
clients that call LLM providers, AWS or MCP servers. `Evaluator`,
`GuardPartner`, `CostCalculator` and `DatasetLoader` are abstract: the
package evaluates no guards, prices no usage and loads no datasets itself.
Usage counters live in process memory only and are not persisted.

## Running the tests

```
pip install "gatewaycore[test]"
pytest
```