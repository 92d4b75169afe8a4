"""Shared request helper with linear backoff."""

import asyncio

import httpx

from osu_lb_tracker import console

MAX_RETRIES = 5
RETRY_DELAY = 2.0


def _should_retry(resp: httpx.Response) -> bool:
    return resp.status_code == 429 or resp.status_code >= 500


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs,
) -> httpx.Response:
    """Send a request, retrying transport errors, 429 and 5xx responses.

    The last response is returned as-is once retries run out; the last
    transport error is re-raised.
    """
    attempt = 0
    while True:
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            if attempt >= MAX_RETRIES:
                raise
            reason = str(e) or type(e).__name__
        else:
            if not _should_retry(resp) or attempt >= MAX_RETRIES:
                return resp
            reason = f"HTTP {resp.status_code}"

        attempt += 1
        console.print(f"[yellow]{method} {url} failed ({reason}), retrying attempt {attempt}[/yellow]")
        await asyncio.sleep(attempt * RETRY_DELAY)
