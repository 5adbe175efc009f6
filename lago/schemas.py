from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ModelKind(str, Enum):
    TOXICITY = "toxicity"
    OFFENSIVENESS = "offensiveness"
    SENTIMENT = "sentiment"


class ToneLengthPrefs(BaseModel):
    """
    Rewrite preferences chosen in the extension panel.
    Field names match what the content script sends ('keepSlang').
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    tone: str | None = Field(None, description="Requested tone, e.g. 'match-writer', 'polite', 'supportive'.")
    length: str = Field("similar", description="Requested length, e.g. 'one-liner', 'short', 'similar'.")
    keep_slang: bool = Field(False, alias="keepSlang", description="Keep the writer's slang in rewrites.")
    strictness: str = Field("medium", description="How eagerly the extension nudges the writer.")


class AnalysisRequest(BaseModel):
    """
    Request model for comment analysis.
    The extension also sends 'context', 'userStyle' and 'instruction'; they are accepted and ignored.
    """
    model_config = ConfigDict(extra="ignore")

    text: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="The comment to analyze. Max length 1000 characters."
    )
    prefs: ToneLengthPrefs = Field(default_factory=ToneLengthPrefs)


class ClassificationResult(BaseModel):
    """Output of a single classification model."""
    label: str = Field(..., description="Label the verdict was read from (e.g. 'toxic', 'negative').")
    score: float = Field(..., ge=0.0, le=1.0, description="Model probability for that label.")
    flagged: bool = Field(..., description="True if the label crossed the flag rule for its model.")


NEUTRAL_SENTIMENT = ClassificationResult(label="neutral", score=0.0, flagged=False)


class Classification(BaseModel):
    """Aggregate verdict. 'categories' and 'reasons' are parallel lists in detection order."""
    is_offensive: bool
    severity: Severity
    categories: list[str] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)


class Suggestion(BaseModel):
    label: str
    text: str
    notes: str


class AnalysisResponse(BaseModel):
    classification: Classification
    suggestions: list[Suggestion] = Field(default_factory=list)
    final_suggestion: str
    tone_applied: str
    needs_clarification: bool = False
    clarifying_question: str = ""
    notes: str = ""


class AnalyzeEnvelope(BaseModel):
    """Response envelope returned by /analyze, success or failure."""
    ok: bool
    data: AnalysisResponse | None = None
    error: str | None = None
