from lago.schemas import Severity

# Lower bounds, checked highest first
SEVERITY_THRESHOLDS = (
    (0.8, Severity.HIGH),
    (0.6, Severity.MEDIUM),
    (0.4, Severity.LOW),
)


def resolve_severity(toxicity_score: float, offensive_score: float) -> Severity:
    """Buckets the worse of the two harm scores into a severity tier."""
    worst = max(toxicity_score, offensive_score)
    for bound, severity in SEVERITY_THRESHOLDS:
        if worst >= bound:
            return severity
    return Severity.NONE
