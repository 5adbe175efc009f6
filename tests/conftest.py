import asyncio
import pytest
from unittest.mock import MagicMock, AsyncMock
from fastapi import Request, Response
from fastapi_limiter import FastAPILimiter
import redis.asyncio

from lago.api.main import app
from lago.api.dependencies import get_analyzer, get_model_client, get_template_provider
from lago.core.config import Settings
from lago.schemas import ClassificationResult, ModelKind
from lago.services.analyzer import AnalysisOrchestrator
from lago.services.prompts import StaticPromptTemplateProvider

# Mock Redis
redis.asyncio.from_url = MagicMock()

TEST_TEMPLATE = "Be kind in about {length} words: {input}"


async def default_callback(request: Request, response: Response, pexpire: int):
    response.status_code = 429
    return {"error": "Rate limit exceeded"}


async def default_identifier(request: Request):
    return "test"


def result(label, score, flagged):
    return ClassificationResult(label=label, score=score, flagged=flagged)


FRIENDLY_RESULTS = {
    ModelKind.TOXICITY: result("toxic", 0.02, False),
    ModelKind.OFFENSIVENESS: result("offensive", 0.05, False),
    ModelKind.SENTIMENT: result("positive", 0.93, False),
}

INSULT_RESULTS = {
    ModelKind.TOXICITY: result("toxic", 0.85, True),
    ModelKind.OFFENSIVENESS: result("offensive", 0.3, False),
    ModelKind.SENTIMENT: result("negative", 0.7, True),
}


class FakeModelClient:
    """In-memory stand-in for ModelClient that records every call."""

    def __init__(self, results=None, errors=None, delays=None, rewrite="You could be kinder.", rewrite_error=None):
        self.results = dict(results or FRIENDLY_RESULTS)
        self.errors = errors or {}
        self.delays = delays or {}
        self.rewrite = rewrite
        self.rewrite_error = rewrite_error
        self.classify_calls = []
        self.generate_calls = []
        self.models = {
            ModelKind.TOXICITY: "test/toxic",
            ModelKind.OFFENSIVENESS: "test/offensive",
            ModelKind.SENTIMENT: "test/sentiment",
        }
        self.rewrite_model = "test/rewrite"
        self.api_key_configured = True

    async def classify(self, kind, text):
        self.classify_calls.append(kind)
        if kind in self.delays:
            await asyncio.sleep(self.delays[kind])
        if kind in self.errors:
            raise self.errors[kind]
        return self.results[kind]

    async def generate(self, prompt, max_new_tokens):
        self.generate_calls.append((prompt, max_new_tokens))
        if self.rewrite_error is not None:
            raise self.rewrite_error
        return self.rewrite


@pytest.fixture
def template_provider():
    return StaticPromptTemplateProvider(TEST_TEMPLATE, source="test")


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        HUGGINGFACE_API_KEY="hf_test",
        HF_INFERENCE_URL="https://hf.test/models",
        TOXIC_MODEL="test/toxic",
        OFFENSIVE_MODEL="test/offensive",
        SENTIMENT_MODEL="test/sentiment",
        REWRITE_MODEL="test/rewrite",
        CLASSIFY_TIMEOUT=0.2,
        GENERATE_TIMEOUT=0.2,
    )


@pytest.fixture(scope="session", autouse=True)
def setup_mocks():
    # Mock Redis for Rate Limiter
    FastAPILimiter.redis = AsyncMock()
    FastAPILimiter.redis.script_load = AsyncMock(return_value="sha")
    # Make evalsha return 0 (allowed)
    FastAPILimiter.redis.evalsha = AsyncMock(return_value=0)

    # Set defaults usually set by init
    FastAPILimiter.http_callback = default_callback
    FastAPILimiter.identifier = default_identifier
    FastAPILimiter.prefix = "fastapi-limiter"
    FastAPILimiter.lua_sha = "sha"


@pytest.fixture
def fake_client():
    return FakeModelClient()


@pytest.fixture
def override_dependencies(fake_client, template_provider):
    """Wires the app to the fake model client and a fixed prompt template."""
    app.dependency_overrides[get_model_client] = lambda: fake_client
    app.dependency_overrides[get_template_provider] = lambda: template_provider
    app.dependency_overrides[get_analyzer] = lambda: AnalysisOrchestrator(fake_client, template_provider)

    yield fake_client
    app.dependency_overrides = {}


@pytest.fixture
def make_client():
    return FakeModelClient


@pytest.fixture
def insult_results():
    return dict(INSULT_RESULTS)
