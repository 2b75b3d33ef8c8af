"""
Claude model adapter

Structured output is obtained by forcing a single tool call whose input
schema is the requested output schema. Tool inputs must be JSON objects, so
array schemas are wrapped in {"items": [...]} on the way in and unwrapped on
the way out. If the model answers with text instead, the JSON is taken from
the text after stripping markdown fences.
"""
import json
from decimal import Decimal
from typing import Any, Dict, Optional

import anthropic
import structlog

from packages.common.errors import ModelError

logger = structlog.get_logger()

TOOL_NAME = "emit_result"
WRAPPED_KEY = "items"


def strip_code_fences(text: str) -> str:
    """Extract JSON from a reply that may be wrapped in markdown fences"""
    if "```json" in text:
        return text.split("```json")[1].split("```")[0].strip()
    if "```" in text:
        return text.split("```")[1].split("```")[0].strip()
    return text.strip()


class ClaudeModelClient:
    """
    ModelClient backed by the Anthropic Messages API.

    Usage:
        client = ClaudeModelClient(api_key="sk-...")
        raw = await client.infer(prompt, schema, system="...")
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "claude-sonnet-4-5",
        max_tokens: int = 4096,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        """
        Initialize the model client.

        Args:
            api_key: Anthropic API key
            model: Model name
            max_tokens: Output token ceiling per call
            client: Preconfigured SDK client (tests)
        """
        if client is None and not api_key:
            logger.warning("anthropic_api_key_missing",
                           message="AI API key not set, model calls will fail")
        self.client = client or (anthropic.AsyncAnthropic(api_key=api_key) if api_key else None)
        self.model = model
        self.max_tokens = max_tokens

        # Cost per token (Claude Sonnet 4.5 pricing as of 2025)
        self.input_cost_per_1k = Decimal("0.003")
        self.output_cost_per_1k = Decimal("0.015")

    async def infer(
        self,
        prompt: str,
        output_schema: Dict[str, Any],
        *,
        system: Optional[str] = None,
    ) -> str:
        if self.client is None:
            raise ModelError("model", "AI client not initialized (missing API key)")

        wrapped = output_schema.get("type") != "object"
        input_schema = (
            {"type": "object", "properties": {WRAPPED_KEY: output_schema}, "required": [WRAPPED_KEY]}
            if wrapped else output_schema
        )

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": 0.0,
            "messages": [{"role": "user", "content": prompt}],
            "tools": [{
                "name": TOOL_NAME,
                "description": "Return the structured result.",
                "input_schema": input_schema,
            }],
            "tool_choice": {"type": "tool", "name": TOOL_NAME},
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error("model_call_failed", model=self.model, error=str(e), exc_info=True)
            raise ModelError("model", str(e), getattr(e, "status_code", None)) from e

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info("model_call_complete",
                        model=self.model,
                        input_tokens=usage.input_tokens,
                        output_tokens=usage.output_tokens,
                        cost_usd=float(self._calculate_cost(usage.input_tokens, usage.output_tokens)))

        for block in response.content:
            if getattr(block, "type", None) == "tool_use":
                payload = block.input
                if wrapped:
                    payload = payload.get(WRAPPED_KEY) if isinstance(payload, dict) else None
                    if not isinstance(payload, list):
                        logger.error("model_tool_input_malformed", model=self.model)
                        raise ModelError("model", f"Tool input lacks the '{WRAPPED_KEY}' array")
                return json.dumps(payload, ensure_ascii=False)

        for block in response.content:
            if getattr(block, "type", None) == "text" and block.text.strip():
                return strip_code_fences(block.text)

        raise ModelError("model", "Model returned no content")

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> Decimal:
        """Cost of one call in USD"""
        input_cost = (Decimal(input_tokens) / 1000) * self.input_cost_per_1k
        output_cost = (Decimal(output_tokens) / 1000) * self.output_cost_per_1k
        return input_cost + output_cost
