import logging
import re
from lago.schemas import Suggestion

logger = logging.getLogger(__name__)

MAX_NEW_TOKENS = 200

_INTENSIFIER_RE = re.compile(r"\b(bad|terrible|awful|horrible)\b", re.IGNORECASE)
_REPLACEMENT = "concerning"

AI_LABEL = "Friendly rewrite"
FALLBACK_LABEL = "Simplified version"


def word_count(text: str) -> int:
    """Space-delimited word count used as the rewrite's target length."""
    return len(text.split(" "))


def max_new_tokens_for(text: str) -> int:
    return min(2 * word_count(text), MAX_NEW_TOKENS)


def _match_case(word: str) -> str:
    if word.isupper():
        return _REPLACEMENT.upper()
    if word[0].isupper():
        return _REPLACEMENT.capitalize()
    return _REPLACEMENT


def fallback_rewrite(text: str) -> str:
    """
    Rule-based rewrite used when generation is unavailable.
    Softens a fixed set of intensifiers, whole words only ("badly" is left alone).
    """
    return _INTENSIFIER_RE.sub(lambda m: _match_case(m.group(0)), text)


def ai_suggestion(text: str) -> Suggestion:
    return Suggestion(
        label=AI_LABEL,
        text=text,
        notes="AI-generated kinder version maintaining your original meaning.",
    )


def fallback_suggestion(text: str) -> Suggestion:
    return Suggestion(
        label=FALLBACK_LABEL,
        text=text,
        notes="Basic rewrite due to AI model unavailability.",
    )


class RewriteGenerator:
    """Builds the rewrite prompt and asks the generation model for a kinder version."""

    def __init__(self, model_client, template_provider):
        self.model_client = model_client
        self.template_provider = template_provider

    def build_prompt(self, text: str) -> str:
        template = self.template_provider.get()
        return (
            template
            .replace("{length}", str(word_count(text)), 1)
            .replace("{input}", text, 1)
        )

    async def rewrite(self, text: str) -> str:
        """Returns the stripped generated text. Model errors propagate to the caller."""
        prompt = self.build_prompt(text)
        logger.debug(f"Requesting rewrite ({len(prompt)} prompt chars)")
        generated = await self.model_client.generate(prompt, max_new_tokens_for(text))
        return generated.strip()
