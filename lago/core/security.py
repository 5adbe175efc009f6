from fastapi import Request, Response, HTTPException
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

MAX_PAYLOAD_SIZE = 2 * 1024 * 1024  # 2MB


async def validate_payload_size(request: Request):
    """
    Dependency to check Content-Length before body parsing.
    """
    content_length = request.headers.get('content-length')
    if content_length:
        if int(content_length) > MAX_PAYLOAD_SIZE:
            raise HTTPException(status_code=413, detail="Payload too large. Max 2MB.")


async def get_rate_limit_key(request: Request):
    """
    Rate limit per client address; the extension sends no credentials.
    Behind a proxy, run uvicorn with --proxy-headers so client.host is the real peer.
    """
    return request.client.host if request.client else "anon"


def optional_rate_limiter(limiter: RateLimiter):
    """
    Wraps a fastapi-limiter dependency so requests pass unthrottled when Redis
    was unavailable at startup (local development without Redis).
    """
    async def dependency(request: Request, response: Response):
        if FastAPILimiter.redis is None:
            return
        await limiter(request, response)
    return dependency
