"""Redis client construction.

The client is owned by the application (``app.state.redis``). It only backs
request rate limiting and the readiness probe; territory state is never
cached here.
"""

import redis.asyncio as redis


def create_redis(url: str) -> redis.Redis | None:
    """Build a pooled client, or ``None`` when no URL is configured.

    No connection is opened until first use.
    """
    if not url:
        return None
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        socket_connect_timeout=1,
    )


async def close_redis(client: redis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
