import asyncio
import logging
from lago.core.errors import LagoError, TextValidationError
from lago.schemas import (
    NEUTRAL_SENTIMENT,
    AnalysisResponse,
    ClassificationResult,
    ModelKind,
    Suggestion,
    ToneLengthPrefs,
)
from lago.services.aggregator import aggregate
from lago.services.rewrite import (
    FALLBACK_LABEL,
    RewriteGenerator,
    ai_suggestion,
    fallback_rewrite,
    fallback_suggestion,
)

logger = logging.getLogger(__name__)

DEFAULT_TONE_KIND = "match-writer"
DEFAULT_TONE_REWRITE = "polite"


class AnalysisOrchestrator:
    """
    End-to-end comment analysis.

    Pipeline: Classify (toxicity | offensiveness | sentiment, concurrent) -> Aggregate
              -> [offensive only] Rewrite, or fallback rewrite on failure
    """

    def __init__(self, model_client, template_provider):
        self.model_client = model_client
        self.rewriter = RewriteGenerator(model_client, template_provider)

    async def analyze(self, text: str, prefs: ToneLengthPrefs | None = None) -> AnalysisResponse:
        if not text or not text.strip():
            raise TextValidationError("Missing text")
        prefs = prefs or ToneLengthPrefs()

        toxicity, offensive, sentiment = await self._classify_all(text)
        classification = aggregate(toxicity, offensive, sentiment)
        logger.info(
            f"Classified comment: offensive={classification.is_offensive}, "
            f"severity={classification.severity.value}, categories={classification.categories}"
        )

        if not classification.is_offensive:
            return AnalysisResponse(
                classification=classification,
                suggestions=[Suggestion(label="Original", text=text, notes="No offensive language detected.")],
                final_suggestion=text,
                tone_applied=prefs.tone or DEFAULT_TONE_KIND,
                notes="Your comment is already kind and inclusive!",
            )

        tone = prefs.tone or DEFAULT_TONE_REWRITE
        try:
            rewritten = await self.rewriter.rewrite(text)
        except LagoError as e:
            logger.warning(f"Rewrite generation failed, using fallback: {e}")
            fallback = fallback_rewrite(text)
            return AnalysisResponse(
                classification=classification,
                suggestions=[fallback_suggestion(fallback)],
                final_suggestion=fallback,
                tone_applied=tone,
                notes="Basic rewrite applied. Consider rephrasing manually for better results.",
            )

        return AnalysisResponse(
            classification=classification,
            suggestions=[ai_suggestion(rewritten)],
            final_suggestion=rewritten,
            tone_applied=tone,
            notes=f"Rewritten to be more inclusive while preserving your {sentiment.label} sentiment.",
        )

    async def _classify_all(self, text: str):
        """
        Fans out the three classifications and waits for all of them.
        Toxicity and offensiveness failures abort the analysis (siblings are
        cancelled); sentiment failures degrade to neutral.
        """
        tasks = [
            asyncio.ensure_future(self.model_client.classify(ModelKind.TOXICITY, text)),
            asyncio.ensure_future(self.model_client.classify(ModelKind.OFFENSIVENESS, text)),
            asyncio.ensure_future(self._sentiment_or_neutral(text)),
        ]
        try:
            return await asyncio.gather(*tasks)
        except Exception as e:
            for task in tasks:
                task.cancel()
            logger.error(f"Classification failed: {type(e).__name__}: {e}")
            raise

    async def _sentiment_or_neutral(self, text: str) -> ClassificationResult:
        try:
            return await self.model_client.classify(ModelKind.SENTIMENT, text)
        except Exception as e:
            logger.warning(f"Sentiment analysis failed, assuming neutral: {e}")
            return NEUTRAL_SENTIMENT


def rewrite_path(response: AnalysisResponse) -> str:
    """Which rewrite branch produced a response: 'none', 'ai' or 'fallback'."""
    if not response.classification.is_offensive:
        return "none"
    if response.suggestions and response.suggestions[0].label == FALLBACK_LABEL:
        return "fallback"
    return "ai"
