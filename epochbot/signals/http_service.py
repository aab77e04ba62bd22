from __future__ import annotations

import asyncio
import random
import time
import urllib.parse

import aiohttp


class HttpService:
    """Shared aiohttp session with per-host pacing and 429/5xx retry."""

    def __init__(
        self,
        *,
        conn_limit: int = 20,
        min_gap_ms: float = 150.0,
        retries_429: int = 2,
        retries_5xx: int = 2,
        user_agent: str = "epochbot/0.3",
    ):
        self._conn_limit = max(1, int(conn_limit))
        self._min_gap_s = max(0.0, float(min_gap_ms) / 1000.0)
        self._retries_429 = max(0, int(retries_429))
        self._retries_5xx = max(0, int(retries_5xx))
        self._user_agent = user_agent

        self._session: aiohttp.ClientSession | None = None
        self._host_last_ts: dict[str, float] = {}
        self._host_locks: dict[str, asyncio.Lock] = {}

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=self._conn_limit, enable_cleanup_closed=True)
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": self._user_agent},
            )
        return self._session

    async def _pace(self, host: str) -> None:
        lock = self._host_locks.setdefault(host, asyncio.Lock())
        async with lock:
            now = time.monotonic()
            last_ts = self._host_last_ts.get(host, 0.0)
            if last_ts > 0 and (now - last_ts) < self._min_gap_s:
                await asyncio.sleep(self._min_gap_s - (now - last_ts))
            self._host_last_ts[host] = time.monotonic()

    async def post_json(self, url: str, payload: dict, *, timeout: float = 10.0):
        session = await self._ensure_session()
        host = urllib.parse.urlparse(url).netloc

        last_err: Exception | None = None
        attempts = max(1, self._retries_429, self._retries_5xx) + 1
        for i in range(attempts):
            await self._pace(host)
            try:
                async with session.post(
                    url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as r:
                    if r.status == 429 and i < self._retries_429:
                        retry_after = max(1.0, float(r.headers.get("Retry-After", "2") or 2.0))
                        await asyncio.sleep(min(30.0, retry_after + random.uniform(0.05, 0.35)))
                        continue
                    if r.status >= 500 and i < self._retries_5xx:
                        await asyncio.sleep(0.25 + (0.25 * i))
                        continue
                    if r.status >= 400:
                        raise RuntimeError(f"http {r.status} {url}")
                    return await r.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_err = e
                if i < (attempts - 1):
                    await asyncio.sleep(0.20 + (0.15 * i))
                    continue
        raise RuntimeError(f"http post failed: {url} err={last_err}")
