"""
Tests for the Claude model adapter (Anthropic SDK mocked).
"""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from packages.common.errors import ModelError
from packages.integrations.model_client import ClaudeModelClient, strip_code_fences

OBJECT_SCHEMA = {"type": "object", "properties": {"tienda": {"type": "string"}}}
ARRAY_SCHEMA = {"type": "array", "items": {"type": "object"}}


def _client(*blocks):
    sdk = MagicMock()
    sdk.messages.create = AsyncMock(return_value=SimpleNamespace(
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=1200, output_tokens=300),
    ))
    return sdk


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n[1]\n```') == "[1]"
    assert strip_code_fences(' {"a": 1} ') == '{"a": 1}'


def test_object_schema_forced_tool_call():
    sdk = _client(SimpleNamespace(type="tool_use", input={"tienda": "Mercadona"}))
    client = ClaudeModelClient(api_key=None, client=sdk)

    raw = asyncio.run(client.infer("prompt", OBJECT_SCHEMA, system="sistema"))

    assert json.loads(raw) == {"tienda": "Mercadona"}
    kwargs = sdk.messages.create.call_args.kwargs
    assert kwargs["tools"][0]["input_schema"] == OBJECT_SCHEMA
    assert kwargs["tool_choice"] == {"type": "tool", "name": "emit_result"}
    assert kwargs["system"] == "sistema"


def test_array_schema_is_wrapped_and_unwrapped():
    pairs = [{"original": "LECHE", "simplificado": "Leche"}]
    sdk = _client(SimpleNamespace(type="tool_use", input={"items": pairs}))
    client = ClaudeModelClient(api_key=None, client=sdk)

    raw = asyncio.run(client.infer("prompt", ARRAY_SCHEMA))

    assert json.loads(raw) == pairs
    input_schema = sdk.messages.create.call_args.kwargs["tools"][0]["input_schema"]
    assert input_schema["properties"]["items"] == ARRAY_SCHEMA
    assert "system" not in sdk.messages.create.call_args.kwargs


def test_text_answer_fallback():
    sdk = _client(SimpleNamespace(type="text", text='```json\n{"tienda": "Dia"}\n```'))
    raw = asyncio.run(ClaudeModelClient(api_key=None, client=sdk).infer("p", OBJECT_SCHEMA))
    assert json.loads(raw) == {"tienda": "Dia"}


def test_empty_answer_raises():
    sdk = _client()
    with pytest.raises(ModelError):
        asyncio.run(ClaudeModelClient(api_key=None, client=sdk).infer("p", OBJECT_SCHEMA))


def test_api_error_becomes_model_error():
    sdk = MagicMock()
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    sdk.messages.create = AsyncMock(side_effect=anthropic.APIConnectionError(request=request))

    with pytest.raises(ModelError):
        asyncio.run(ClaudeModelClient(api_key=None, client=sdk).infer("p", OBJECT_SCHEMA))


def test_missing_key_raises_on_use():
    client = ClaudeModelClient(api_key=None)
    with pytest.raises(ModelError):
        asyncio.run(client.infer("p", OBJECT_SCHEMA))


def test_cost_calculation():
    client = ClaudeModelClient(api_key=None, client=MagicMock())
    assert float(client._calculate_cost(1000, 1000)) == pytest.approx(0.018)


@pytest.mark.parametrize("tool_input", [{"wrong": 1}, {"items": {"original": "PAN"}}, ["PAN"]])
def test_wrapped_answer_without_items_array_raises(tool_input):
    sdk = _client(SimpleNamespace(type="tool_use", input=tool_input))
    with pytest.raises(ModelError):
        asyncio.run(ClaudeModelClient(api_key=None, client=sdk).infer("p", ARRAY_SCHEMA))
