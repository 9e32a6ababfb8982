"""Redis client used by the rate limiter. Optional: an empty URL disables it."""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Create the shared client; no-op when ``url`` is empty."""
    global _client  # noqa: PLW0603
    if not url:
        return
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """The shared client; raises RuntimeError when Redis is not configured."""
    if _client is None:
        msg = "Redis not initialized. Set REDIS_URL and call init_redis() first."
        raise RuntimeError(msg)
    return _client
