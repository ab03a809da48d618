"""LLM-based intent and entity extraction.

The model is asked for a strict JSON object; anything that cannot be reached,
parsed or validated degrades to a low-confidence ``general_help`` result so
that a turn is never aborted by the classifier.
"""
import json
import re
from typing import Any, Dict

from pydantic import ValidationError

from ..app.config import Config
from ..app.generate import GenerationClient, LLMCallSettings
from ..app.prompt_builder import INTENT_SYSTEM_PROMPT
from ..schemas.io_models import INTENTS, IntentResult
from ..utils.errors import LLMError
from ..utils.logger import get_logger
from ..utils.security import mask_pii

logger = get_logger(__name__)

DEFAULT_INTENT_SETTINGS = LLMCallSettings(
    temperature=Config.INTENT_TEMPERATURE,
    max_tokens=Config.INTENT_MAX_TOKENS,
    system_prompt=INTENT_SYSTEM_PROMPT,
)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_intent_json(raw: str) -> Dict[str, Any]:
    """Pull the JSON object out of a model reply (tolerates fences and chatter)."""
    text = _FENCE.sub("", (raw or "").strip())
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        json_match = re.search(r"\{.*\}", text, re.DOTALL)
        if not json_match:
            raise
        parsed = json.loads(json_match.group())
    if not isinstance(parsed, dict):
        raise ValueError("intent payload is not a JSON object")
    return parsed


class IntentExtractor:
    def __init__(self, client: GenerationClient, settings: LLMCallSettings = DEFAULT_INTENT_SETTINGS):
        self.client = client
        self.settings = settings

    def extract(self, text: str) -> IntentResult:
        messages = [
            {"role": "system", "content": self.settings.system_prompt},
            {"role": "user", "content": text},
        ]
        try:
            raw = self.client.complete(
                messages,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
            )
            result = IntentResult.model_validate(parse_intent_json(raw))
        except LLMError as e:
            logger.warning("Intent extraction unavailable: %s", e)
            return IntentResult.fallback()
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("Unparseable intent output for %r: %s", mask_pii(text), e)
            return IntentResult.fallback()

        if result.intent not in INTENTS:
            logger.info("Passing through unrecognized intent %r", result.intent)
        return result
