#!/usr/bin/env python3
"""
Generation module for the shop chatbot.

This module wraps the Groq chat-completions API and produces the
user-facing reply from the turn's intent, entities and retrieved context.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from .config import Config
from .prompt_builder import PromptBuilder
from ..schemas.io_models import ContextBundle
from ..utils.errors import LLMError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ERROR_REPLY = "I apologize, but I encountered an error. Please try again later."
EMPTY_REPLY = "I apologize, but I encountered an error. Please try again."


@dataclass(frozen=True)
class LLMCallSettings:
    """Sampling parameters and persona for one kind of LLM call."""
    temperature: float
    max_tokens: int
    system_prompt: str = ""


class GenerationClient:
    """Client for the remote text-completion service (OpenAI-compatible)."""

    def __init__(self, api_key: str = None, model: str = None, api_url: str = None, timeout: float = None, http: requests.Session = None):
        """Initialize the generation client; one pooled HTTP session per client."""
        self.api_key = api_key if api_key is not None else Config.GROQ_API_KEY
        self.llm_model = model or Config.GROQ_LLM_MODEL
        self.api_url = api_url or Config.GROQ_API_URL
        self.timeout = timeout if timeout is not None else Config.LLM_TIMEOUT_SECONDS
        self.http = http or requests.Session()

        if not self.api_key:
            logger.warning("GROQ_API_KEY is not set; LLM calls will fall back to safe defaults")

    def complete(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
        """
        Request a single completion.

        Args:
            messages: Role-tagged chat messages
            temperature: Sampling temperature
            max_tokens: Output-size cap

        Returns:
            Completion text (may be empty)

        Raises:
            LLMError: transport failure, non-200 status or malformed payload
        """
        if not self.api_key:
            raise LLMError("Groq API key is required")

        payload = {
            "model": self.llm_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = self.http.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise LLMError(f"Error calling completion API: {e}") from e

        if response.status_code != 200:
            logger.warning("Completion API returned %s: %s", response.status_code, response.text[:200])
            raise LLMError(f"Completion API returned status {response.status_code}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Error parsing completion response: {e}") from e

        return (content or "").strip()


DEFAULT_RESPONSE_SETTINGS = LLMCallSettings(
    temperature=Config.RESPONSE_TEMPERATURE,
    max_tokens=Config.RESPONSE_MAX_TOKENS,
    system_prompt=PromptBuilder.PERSONA,
)


class ResponseGenerator:
    """Second LLM call of a turn: turn intent + context into the reply text."""

    def __init__(self, client: GenerationClient, settings: LLMCallSettings = DEFAULT_RESPONSE_SETTINGS, builder: PromptBuilder = None):
        self.client = client
        self.settings = settings
        self.builder = builder or PromptBuilder(persona=settings.system_prompt or PromptBuilder.PERSONA)

    def generate(self, user_message: str, intent: str, entities: Dict[str, Any], context: Optional[ContextBundle] = None) -> str:
        """Never raises on service failure; returns a fixed apology instead."""
        prompt = self.builder.build_response_prompt(user_message, intent, entities, context)
        try:
            answer = self.client.complete(
                [{"role": "system", "content": prompt}],
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
            )
        except LLMError as e:
            logger.error("Error generating response: %s", e)
            return ERROR_REPLY

        if not answer:
            return EMPTY_REPLY
        return answer
