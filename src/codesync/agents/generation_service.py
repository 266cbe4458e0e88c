"""Generation service boundary: one call per phase over Anthropic or OpenAI."""

import json
import logging
import os
import re
from typing import Any, Literal, Sequence

import openai
from anthropic import Anthropic

from codesync.agents.exceptions import GenerationServiceError
from codesync.config import PipelineConfig
from codesync.models import ChatMessage, GenerationResponse, ToolCall

logger = logging.getLogger(__name__)

OPENAI_FALLBACK_MODEL = "gpt-4o-mini"
JSON_MODE_INSTRUCTION = (
    "\n\nRespond with a single JSON object only. Do not wrap it in markdown."
)

_JSON_FENCE_RE = re.compile(r"^```(?:json)?\s*\n([\s\S]*?)\n?```\s*$")


def parse_json_object(text: str) -> dict[str, Any]:
    """Decode a JSON object from a model response.

    A single surrounding ```json fence is tolerated.

    Raises:
        ValueError: If the text is not a JSON object.
    """
    stripped = text.strip()
    fenced = _JSON_FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1).strip()
    data = json.loads(stripped)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class GenerationService:
    """Sends phase prompts to the configured provider chain.

    The primary provider is Anthropic when its key is available (``auto``);
    a configured fallback provider is tried once if the primary call fails.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        api_key: str | None = None,
        anthropic_client: Any = None,
        openai_client: Any = None,
    ):
        """Initialize the service.

        Args:
            config: Pipeline configuration (models, provider, limits).
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY).
            anthropic_client: Pre-built Anthropic client, mainly for tests.
            openai_client: Pre-built OpenAI client, mainly for tests.

        Raises:
            GenerationServiceError: If no client can be built for the
                configured providers.
        """
        self.config = config or PipelineConfig()
        self._anthropic_client = anthropic_client
        self._openai_client = openai_client

        if self._anthropic_client is None and openai_client is None:
            anthropic_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            openai_key = os.getenv("OPENAI_API_KEY")
            if anthropic_key:
                self._anthropic_client = Anthropic(
                    api_key=anthropic_key,
                    timeout=self.config.timeout_seconds,
                )
            if openai_key:
                self._openai_client = openai.OpenAI(
                    api_key=openai_key,
                    timeout=self.config.timeout_seconds,
                )

        if not (self._anthropic_client or self._openai_client):
            raise GenerationServiceError(
                "No Anthropic or OpenAI API key found. "
                "Set ANTHROPIC_API_KEY or OPENAI_API_KEY."
            )
        self._check_provider_config()

    def _check_provider_config(self) -> None:
        provider = self.config.llm_provider
        if provider == "anthropic" and self._anthropic_client is None:
            raise GenerationServiceError("No Anthropic API key found for --llm-provider=anthropic.")
        if provider == "openai" and self._openai_client is None:
            raise GenerationServiceError("No OpenAI API key found for --llm-provider=openai.")
        fallback = self.config.llm_fallback_provider
        if fallback == "anthropic" and self._anthropic_client is None:
            raise GenerationServiceError(
                "Fallback provider requested as anthropic but ANTHROPIC_API_KEY is not set."
            )
        if fallback == "openai" and self._openai_client is None:
            raise GenerationServiceError(
                "Fallback provider requested as openai but OPENAI_API_KEY is not set."
            )

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.config.llm_provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.config.llm_provider

    def _provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        fallback = self.config.llm_fallback_provider
        if fallback and fallback != chain[0]:
            chain.append(fallback)
        return chain

    def _resolve_model(self, phase: str, provider: str) -> str:
        model = self.config.model_for_phase(phase)
        if provider == "openai" and model.startswith("claude-"):
            return OPENAI_FALLBACK_MODEL
        return model

    def _get_openai_tool_schema(self, schema: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": schema["name"],
                "description": schema.get("description", ""),
                "parameters": schema.get("input_schema", {}),
            },
        }

    def generate(
        self,
        phase: str,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
        json_mode: bool = False,
    ) -> GenerationResponse:
        """Run one generation call for ``phase``.

        Args:
            phase: Pipeline phase; selects the model and token limit.
            system_prompt: Phase instructions.
            messages: Conversation turns, oldest first.
            tools: Tool schemas in Anthropic ``input_schema`` form.
            json_mode: Ask the model for a single JSON object.

        Returns:
            GenerationResponse with text and any tool calls.

        Raises:
            GenerationServiceError: If every provider in the chain fails.
        """
        providers = self._provider_chain()
        last_error: Exception | None = None

        for provider in providers:
            model = self._resolve_model(phase, provider)
            try:
                if provider == "anthropic":
                    return self._call_anthropic(
                        phase, model, system_prompt, messages, tools, json_mode
                    )
                return self._call_openai(phase, model, system_prompt, messages, tools, json_mode)
            except Exception as error:
                last_error = error
                logger.warning(
                    "%s phase call to %s (%s) failed: %s", phase, provider, model, error
                )

        raise GenerationServiceError(
            f"{phase.capitalize()} phase failed: {last_error}"
        ) from last_error

    def _call_anthropic(
        self,
        phase: str,
        model: str,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        tools: list[dict[str, Any]] | None,
        json_mode: bool,
    ) -> GenerationResponse:
        if self._anthropic_client is None:
            raise GenerationServiceError("Anthropic client unavailable")

        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": self.config.max_tokens_for_phase(phase),
            "system": system_prompt + (JSON_MODE_INSTRUCTION if json_mode else ""),
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if tools:
            kwargs["tools"] = tools
        response = self._anthropic_client.messages.create(**kwargs)

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(name=block.name, arguments=block.input or {}))

        return GenerationResponse(
            text="".join(text_parts),
            tool_calls=tool_calls,
            model=model,
            provider="anthropic",
        )

    def _call_openai(
        self,
        phase: str,
        model: str,
        system_prompt: str,
        messages: Sequence[ChatMessage],
        tools: list[dict[str, Any]] | None,
        json_mode: bool,
    ) -> GenerationResponse:
        if self._openai_client is None:
            raise GenerationServiceError("OpenAI client unavailable")

        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": self.config.max_tokens_for_phase(phase),
            "messages": [{"role": "system", "content": system_prompt}]
            + [{"role": m.role, "content": m.content} for m in messages],
        }
        if tools:
            kwargs["tools"] = [self._get_openai_tool_schema(t) for t in tools]
            kwargs["tool_choice"] = "auto"
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = self._openai_client.chat.completions.create(**kwargs)

        message = response.choices[0].message
        tool_calls = [
            ToolCall(name=call.function.name, arguments=call.function.arguments or "{}")
            for call in (getattr(message, "tool_calls", None) or [])
            if getattr(call, "type", "function") == "function"
        ]
        return GenerationResponse(
            text=message.content or "",
            tool_calls=tool_calls,
            model=model,
            provider="openai",
        )
