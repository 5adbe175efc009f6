from lago.schemas import Classification, ClassificationResult
from lago.services.severity import resolve_severity


def _percent(score: float) -> str:
    return f"{score * 100:.1f}%"


def aggregate(
    toxicity: ClassificationResult,
    offensive: ClassificationResult,
    sentiment: ClassificationResult,
) -> Classification:
    """
    Merges the three model verdicts into one Classification.

    Rules run in a fixed order (toxic, offensive, negative sentiment) and that
    order is what callers see in 'categories' and 'reasons'. Sentiment is
    informational only: it adds a reason but never makes a comment offensive
    and never raises severity.
    """
    categories = []
    reasons = []

    if toxicity.flagged:
        categories.append("toxic")
        reasons.append(f"Toxicity detected ({_percent(toxicity.score)})")

    if offensive.flagged:
        categories.append("offensive")
        reasons.append(f"Offensive language detected ({_percent(offensive.score)})")

    if sentiment.flagged:
        categories.append("negative_sentiment")
        reasons.append(f"Negative sentiment detected ({_percent(sentiment.score)})")

    return Classification(
        is_offensive=toxicity.flagged or offensive.flagged,
        severity=resolve_severity(toxicity.score, offensive.score),
        categories=categories,
        reasons=reasons,
    )
