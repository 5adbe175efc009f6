import time
import logging
import redis.asyncio as redis
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from starlette.exceptions import HTTPException as StarletteHTTPException

from lago.schemas import AnalysisRequest, AnalyzeEnvelope, ModelKind
from lago.core.errors import LagoError, ModelError, ModelTimeoutError, TextValidationError
from lago.core.security import validate_payload_size, get_rate_limit_key, optional_rate_limiter
from lago.core.telemetry import Telemetry
from lago.core.config import get_settings
from lago.api.dependencies import (
    close_model_client,
    get_analyzer,
    get_model_client,
    get_template_provider,
)
from lago.services.analyzer import AnalysisOrchestrator, rewrite_path
from lago.services.model_client import ModelClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, rate limiter and model client at startup; release connections on shutdown."""
    t0 = time.time()
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Initialize Rate Limiter Redis
    redis_url = settings.REDIS_URL
    if not redis_url:
        redis_url = f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"

    try:
        redis_conn = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(redis_conn)
        logger.info("Rate Limiter initialized.")
    except Exception as e:
        logger.warning(f"Rate Limiter init failed, requests will not be throttled: {e}")
        FastAPILimiter.redis = None
        redis_conn = None

    client = get_model_client(settings)
    provider = get_template_provider(settings)
    get_analyzer(client, provider)
    provider.get()
    elapsed = time.time() - t0
    logger.info(
        f"🟢 Ready to serve: rewrite={client.rewrite_model}, prompt={provider.source}, "
        f"api_key={'set' if client.api_key_configured else 'missing'}, started in {elapsed:.1f}s"
    )

    yield

    await close_model_client()
    if redis_conn:
        await redis_conn.close()


settings = get_settings()

app = FastAPI(
    title=settings.APP_NAME,
    description="Flags offensive comments and suggests kinder rewrites.",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Global is acceptable for telemetry as the collector is thread-safe
telemetry = Telemetry()


@app.post(
    "/analyze",
    response_model=AnalyzeEnvelope,
    response_model_exclude_none=True,
    dependencies=[
        Depends(validate_payload_size),
        Depends(optional_rate_limiter(
            RateLimiter(times=settings.RATE_LIMIT_PER_MINUTE, seconds=60, identifier=get_rate_limit_key)
        )),
    ]
)
async def analyze_endpoint(
    request: AnalysisRequest,
    analyzer: AnalysisOrchestrator = Depends(get_analyzer),
):
    """
    Analyzes a comment and, if it reads as offensive, proposes a kinder rewrite.

    Pipeline: Payload Check -> Rate Limit -> Classify x3 -> Aggregate -> Rewrite (offensive only)
    """
    t0 = time.time()

    data = await analyzer.analyze(request.text, request.prefs)

    latency = (time.time() - t0) * 1000
    telemetry.record_request(latency, data.classification.severity.value, rewrite_path(data))

    return AnalyzeEnvelope(ok=True, data=data)


@app.get("/", response_class=PlainTextResponse)
def root():
    return "Friendly Lago AI backend running."


@app.get("/status")
def status(
    model_client: ModelClient = Depends(get_model_client),
    template_provider=Depends(get_template_provider),
):
    """Models in use and the active rewrite prompt."""
    return {
        "ok": True,
        "models": _model_ids(model_client),
        "prompt": {
            "source": template_provider.source,
            "template": template_provider.get(),
        },
        "status": "operational",
    }


@app.get("/prompt")
def prompt(template_provider=Depends(get_template_provider)):
    return {
        "ok": True,
        "prompt": {
            "source": template_provider.source,
            "template": template_provider.get(),
            "parameters": ["{length}", "{input}"],
        },
    }


@app.get("/health")
def health(
    model_client: ModelClient = Depends(get_model_client),
    template_provider=Depends(get_template_provider),
):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "api_key_configured": model_client.api_key_configured,
        "prompt_source": template_provider.source,
        "rate_limit_per_minute": settings.RATE_LIMIT_PER_MINUTE,
    }


@app.get("/metrics")
def metrics(model_client: ModelClient = Depends(get_model_client)):
    """Production telemetry: uptime, latencies, throughput, severity distribution, fallback rate."""
    return telemetry.snapshot(models=_model_ids(model_client))


def _model_ids(model_client: ModelClient) -> dict:
    return {
        "toxic": model_client.models[ModelKind.TOXICITY],
        "offensive": model_client.models[ModelKind.OFFENSIVENESS],
        "sentiment": model_client.models[ModelKind.SENTIMENT],
        "flanT5": model_client.rewrite_model,
    }


def _error(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=AnalyzeEnvelope(ok=False, error=message).model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid body: report the offending fields without echoing the input back."""
    fields = ", ".join(str(err["loc"][-1]) for err in exc.errors())
    return _error(422, f"Invalid request: {fields}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(LagoError)
async def analysis_exception_handler(request: Request, exc: LagoError):
    """Fatal analysis failures. Timeouts are 504, other model failures 502."""
    telemetry.record_request(0, "error", is_error=True)
    if isinstance(exc, TextValidationError):
        return _error(422, str(exc))
    if isinstance(exc, ModelTimeoutError):
        return _error(504, f"Model timeout: {exc}")
    if isinstance(exc, ModelError):
        return _error(502, f"Model service error: {exc}")
    return _error(500, str(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all error handler for unhandled exceptions."""
    logger.exception("Unhandled error")
    telemetry.record_request(0, "error", is_error=True)
    return _error(500, f"Internal server error: {type(exc).__name__}")
