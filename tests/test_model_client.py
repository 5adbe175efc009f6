"""
Unit Tests: Hugging Face model client (HTTP mocked with httpx.MockTransport)
"""
import asyncio
import json
import httpx
import pytest

from lago.core.errors import MalformedResponseError, ModelServiceError, ModelTimeoutError
from lago.schemas import ModelKind
from lago.services.model_client import ModelClient

TOXIC_OUTPUT = [[{"label": "toxic", "score": 0.91}, {"label": "insult", "score": 0.7}]]
OFFENSIVE_OUTPUT = [{"label": "non-offensive", "score": 0.5}, {"label": "offensive", "score": 0.5}]
SENTIMENT_OUTPUT = [[
    {"label": "negative", "score": 0.72},
    {"label": "neutral", "score": 0.2},
    {"label": "positive", "score": 0.08},
]]


def _client(settings, handler):
    return ModelClient(settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _json_handler(payload, status_code=200, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)
    return handler


class TestClassify:
    def test_toxicity_flagged_from_nested_output(self, settings):
        client = _client(settings, _json_handler(TOXIC_OUTPUT))
        result = asyncio.run(client.classify(ModelKind.TOXICITY, "you are an idiot"))
        assert result.label == "toxic"
        assert result.score == pytest.approx(0.91)
        assert result.flagged is True

    def test_score_at_threshold_is_not_flagged(self, settings):
        client = _client(settings, _json_handler(OFFENSIVE_OUTPUT))
        result = asyncio.run(client.classify(ModelKind.OFFENSIVENESS, "meh"))
        assert result.score == 0.5
        assert result.flagged is False

    def test_sentiment_uses_top_label(self, settings):
        client = _client(settings, _json_handler(SENTIMENT_OUTPUT))
        result = asyncio.run(client.classify(ModelKind.SENTIMENT, "this is awful"))
        assert result.label == "negative"
        assert result.score == pytest.approx(0.72)
        assert result.flagged is True

    def test_positive_sentiment_not_flagged(self, settings):
        output = [{"label": "positive", "score": 0.9}, {"label": "negative", "score": 0.1}]
        client = _client(settings, _json_handler(output))
        result = asyncio.run(client.classify(ModelKind.SENTIMENT, "lovely"))
        assert result.label == "positive"
        assert result.flagged is False

    def test_request_shape(self, settings):
        seen = []
        client = _client(settings, _json_handler(TOXIC_OUTPUT, seen=seen))
        asyncio.run(client.classify(ModelKind.TOXICITY, "hello"))
        request = seen[0]
        assert str(request.url) == "https://hf.test/models/test/toxic"
        assert request.headers["Authorization"] == "Bearer hf_test"
        assert json.loads(request.content) == {"inputs": "hello"}


class TestClassifyFailures:
    def test_missing_expected_label_is_malformed(self, settings):
        output = [{"label": "LABEL_0", "score": 0.9}]
        client = _client(settings, _json_handler(output))
        with pytest.raises(MalformedResponseError, match="toxic"):
            asyncio.run(client.classify(ModelKind.TOXICITY, "hi"))

    def test_empty_output_is_malformed(self, settings):
        client = _client(settings, _json_handler([]))
        with pytest.raises(MalformedResponseError):
            asyncio.run(client.classify(ModelKind.SENTIMENT, "hi"))

    def test_unreadable_prediction_is_malformed(self, settings):
        client = _client(settings, _json_handler([{"label": "toxic"}]))
        with pytest.raises(MalformedResponseError):
            asyncio.run(client.classify(ModelKind.TOXICITY, "hi"))

    def test_non_json_body_is_malformed(self, settings):
        client = _client(settings, lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(MalformedResponseError):
            asyncio.run(client.classify(ModelKind.TOXICITY, "hi"))

    def test_http_error_is_service_error(self, settings):
        client = _client(settings, _json_handler({"error": "Model is loading"}, status_code=503))
        with pytest.raises(ModelServiceError) as exc_info:
            asyncio.run(client.classify(ModelKind.OFFENSIVENESS, "hi"))
        assert exc_info.value.status_code == 503
        assert exc_info.value.model == "test/offensive"

    def test_connection_error_is_service_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        client = _client(settings, handler)
        with pytest.raises(ModelServiceError):
            asyncio.run(client.classify(ModelKind.TOXICITY, "hi"))

    def test_slow_call_times_out(self, settings):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json=TOXIC_OUTPUT)
        client = _client(settings, handler)
        with pytest.raises(ModelTimeoutError) as exc_info:
            asyncio.run(client.classify(ModelKind.TOXICITY, "hi"))
        assert exc_info.value.timeout == settings.CLASSIFY_TIMEOUT

    def test_timeout_is_not_a_service_error(self, settings):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json=TOXIC_OUTPUT)
        client = _client(settings, handler)
        with pytest.raises(ModelTimeoutError) as exc_info:
            asyncio.run(client.classify(ModelKind.TOXICITY, "hi"))
        assert not isinstance(exc_info.value, ModelServiceError)


class TestGenerate:
    def test_returns_stripped_text_and_sends_parameters(self, settings):
        seen = []
        client = _client(settings, _json_handler([{"generated_text": "  Let's talk calmly.  "}], seen=seen))
        out = asyncio.run(client.generate("prompt", 8))
        assert out == "Let's talk calmly."
        body = json.loads(seen[0].content)
        assert str(seen[0].url) == "https://hf.test/models/test/rewrite"
        assert body == {
            "inputs": "prompt",
            "parameters": {"max_new_tokens": 8, "temperature": 0.7, "top_p": 0.9, "do_sample": True},
        }

    def test_accepts_object_shape(self, settings):
        client = _client(settings, _json_handler({"generated_text": "ok"}))
        assert asyncio.run(client.generate("prompt", 4)) == "ok"

    def test_empty_generation_is_malformed(self, settings):
        client = _client(settings, _json_handler([{"generated_text": "   "}]))
        with pytest.raises(MalformedResponseError):
            asyncio.run(client.generate("prompt", 4))

    def test_slow_generation_times_out(self, settings):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json=[{"generated_text": "late"}])
        client = _client(settings, handler)
        with pytest.raises(ModelTimeoutError):
            asyncio.run(client.generate("prompt", 4))


class TestConfig:
    def test_no_api_key_sends_no_auth_header(self, settings):
        seen = []
        anonymous = settings.model_copy(update={"HUGGINGFACE_API_KEY": None})
        client = _client(anonymous, _json_handler(TOXIC_OUTPUT, seen=seen))
        asyncio.run(client.classify(ModelKind.TOXICITY, "hi"))
        assert "Authorization" not in seen[0].headers
        assert client.api_key_configured is False
