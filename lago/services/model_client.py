import asyncio
import logging
import httpx
from lago.core.config import Settings
from lago.core.errors import MalformedResponseError, ModelServiceError, ModelTimeoutError
from lago.schemas import ClassificationResult, ModelKind

logger = logging.getLogger(__name__)

# Label read from each binary classifier's output set
EXPECTED_LABELS = {
    ModelKind.TOXICITY: "toxic",
    ModelKind.OFFENSIVENESS: "offensive",
}

GENERATION_PARAMS = {
    "temperature": 0.7,
    "top_p": 0.9,
    "do_sample": True,
}


class ModelClient:
    """
    Async adapter over the Hugging Face Inference API.

    One attempt per call, bounded by a wall-clock budget. Timeouts raise
    ModelTimeoutError, transport/HTTP failures raise ModelServiceError and
    unexpected payloads raise MalformedResponseError.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None):
        self.base_url = settings.HF_INFERENCE_URL.rstrip("/")
        self.models = {
            ModelKind.TOXICITY: settings.TOXIC_MODEL,
            ModelKind.OFFENSIVENESS: settings.OFFENSIVE_MODEL,
            ModelKind.SENTIMENT: settings.SENTIMENT_MODEL,
        }
        self.rewrite_model = settings.REWRITE_MODEL
        self.threshold = settings.MODEL_FLAG_THRESHOLD
        self.classify_timeout = settings.CLASSIFY_TIMEOUT
        self.generate_timeout = settings.GENERATE_TIMEOUT
        self.api_key_configured = bool(settings.HUGGINGFACE_API_KEY)

        self._headers = {}
        if settings.HUGGINGFACE_API_KEY:
            self._headers["Authorization"] = f"Bearer {settings.HUGGINGFACE_API_KEY}"
        else:
            logger.warning("HUGGINGFACE_API_KEY not set. Requests will be anonymous and heavily throttled.")

        self.client = http_client or httpx.AsyncClient()

    async def classify(self, kind: ModelKind, text: str) -> ClassificationResult:
        model = self.models[kind]
        payload = await self._call(model, {"inputs": text}, self.classify_timeout)
        predictions = _parse_predictions(model, payload)

        if kind is ModelKind.SENTIMENT:
            top = max(predictions, key=lambda p: p[1])
            label, score = top
            return ClassificationResult(label=label, score=score, flagged=label == "negative")

        expected = EXPECTED_LABELS[kind]
        score = dict(predictions).get(expected)
        if score is None:
            labels = [label for label, _ in predictions]
            raise MalformedResponseError(model, f"label '{expected}' missing from output {labels}")

        return ClassificationResult(label=expected, score=score, flagged=score > self.threshold)

    async def generate(self, prompt: str, max_new_tokens: int) -> str:
        model = self.rewrite_model
        body = {
            "inputs": prompt,
            "parameters": {"max_new_tokens": max_new_tokens, **GENERATION_PARAMS},
        }
        payload = await self._call(model, body, self.generate_timeout)

        if isinstance(payload, list) and payload:
            payload = payload[0]
        text = payload.get("generated_text") if isinstance(payload, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise MalformedResponseError(model, "missing or empty 'generated_text'")
        return text.strip()

    async def aclose(self):
        await self.client.aclose()

    async def _call(self, model: str, body: dict, timeout: float):
        t0 = asyncio.get_running_loop().time()
        try:
            payload = await asyncio.wait_for(self._post(model, body, timeout), timeout)
        except asyncio.TimeoutError:
            raise ModelTimeoutError(model, timeout) from None
        elapsed = (asyncio.get_running_loop().time() - t0) * 1000
        logger.debug(f"{model} answered in {elapsed:.0f}ms")
        return payload

    async def _post(self, model: str, body: dict, timeout: float):
        url = f"{self.base_url}/{model}"
        try:
            response = await self.client.post(url, json=body, headers=self._headers, timeout=timeout)
        except httpx.TimeoutException:
            raise ModelTimeoutError(model, timeout) from None
        except httpx.RequestError as e:
            raise ModelServiceError(model, f"request failed: {type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise ModelServiceError(
                model,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            raise MalformedResponseError(model, "response body is not JSON") from None


def _parse_predictions(model: str, payload) -> list[tuple[str, float]]:
    """
    Normalizes a text-classification payload to [(label, score), ...].
    The provider returns either a flat list or the same list nested once.
    """
    if isinstance(payload, list) and payload and isinstance(payload[0], list):
        payload = payload[0]
    if not isinstance(payload, list) or not payload:
        raise MalformedResponseError(model, f"expected a non-empty label list, got {type(payload).__name__}")

    predictions = []
    for item in payload:
        try:
            label = item["label"]
            score = float(item["score"])
        except (KeyError, TypeError, ValueError):
            raise MalformedResponseError(model, f"unreadable prediction {item!r}") from None
        if not isinstance(label, str) or not 0.0 <= score <= 1.0:
            raise MalformedResponseError(model, f"invalid prediction {item!r}")
        predictions.append((label, score))
    return predictions
