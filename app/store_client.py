"""Resilient HTTP client for a remote playlist store.

Talks to the ``/store`` REST surface (see ``app.routes_store``) and
implements ``core.service.PlaylistService``.

Features:
  - 429 Retry-After with jitter
  - Exponential backoff on 5xx and timeouts (reads only; writes are sent once)
  - Immediate failure on other 4xx
  - Configurable timeouts & limited retries
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, List

import httpx

from app.config import get_settings
from core.errors import StoreError
from core.models import PlaylistSummary, Song

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_BACKOFF_BASE = 0.5  # seconds
_BACKOFF_CAP = 30.0  # seconds
_JITTER_MAX = 0.5  # seconds


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class StoreAPIError(StoreError):
    """Raised when a store request fails after all retries."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class StoreClient:
    """Async client for the playlist store REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.store_timeout
        self.max_retries = max_retries if max_retries is not None else settings.store_max_retries
        self._transport = transport

    async def _request(
        self, method: str, path: str, *, retry: bool | None = None, **kwargs: Any
    ) -> httpx.Response:
        """Make a store request with retry logic.

        Parameters
        ----------
        method : str
            HTTP method (GET, POST, PUT, DELETE).
        path : str
            Path below ``/store``, e.g. ``/playlist/{id}/songs``.
        retry : bool, optional
            Retry on timeouts, 429 and 5xx.  Defaults to ``True`` for GET
            only; writes are sent once, since a lost response may hide a
            write the store already applied.
        **kwargs
            Forwarded to ``httpx.AsyncClient.request`` (json, params, …).

        Returns
        -------
        httpx.Response
            The successful response (2xx).

        Raises
        ------
        StoreAPIError
            After exhausting retries or on an unrecoverable error.
        """
        if retry is None:
            retry = method.upper() == "GET"
        url = f"{self.base_url}/store{path}"
        attempts = self.max_retries if retry else 1
        last_status = 0

        for attempt in range(attempts):
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                try:
                    resp = await client.request(method, url, **kwargs)
                except httpx.TimeoutException as exc:
                    if not retry:
                        raise StoreAPIError(504, f"Timeout on {method} {path}") from exc
                    logger.warning("Timeout on attempt %d for %s %s", attempt + 1, method, path)
                    await _backoff_sleep(attempt)
                    continue
                except httpx.TransportError as exc:
                    raise StoreAPIError(503, f"Store unreachable: {exc}") from exc

            last_status = resp.status_code

            # ── Success ─────────────────────────────────────────────
            if resp.status_code < 400:
                return resp

            # ── Writes are never retried ────────────────────────────
            if not retry:
                raise StoreAPIError(resp.status_code, _detail(resp))

            # ── 429 → Retry-After ───────────────────────────────────
            if resp.status_code == 429:
                retry_after = _retry_after(resp)
                if retry_after is None:
                    logger.warning("429 on %s %s without usable Retry-After", method, path)
                    await _backoff_sleep(attempt)
                    continue
                wait = retry_after + random.uniform(0, _JITTER_MAX)
                logger.warning("429 on %s %s, waiting %.1fs", method, path, wait)
                await asyncio.sleep(wait)
                continue

            # ── 5xx → exponential backoff ───────────────────────────
            if resp.status_code >= 500:
                logger.warning(
                    "Store error %d on %s %s (attempt %d)", resp.status_code, method, path, attempt + 1
                )
                await _backoff_sleep(attempt)
                continue

            # ── 4xx (other) → fail immediately ──────────────────────
            raise StoreAPIError(resp.status_code, _detail(resp))

        raise StoreAPIError(
            last_status or 504,
            f"Max retries ({self.max_retries}) exhausted for {method} {path}",
        )

    # ------------------------------------------------------------------
    # PlaylistService
    # ------------------------------------------------------------------

    async def get_songs_of_playlist(self, playlist_id: str) -> List[Song]:
        resp = await self._request("GET", f"/playlist/{playlist_id}/songs")
        return [Song(**s) for s in resp.json().get("songs", [])]

    async def add_song_to_playlist(self, playlist_id: str, song_id: str, index: int = -1) -> None:
        await self._request(
            "PUT", f"/playlist/{playlist_id}/add-song", json={"song_id": song_id, "index": index}
        )

    async def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> None:
        await self._request("DELETE", f"/playlist/{playlist_id}/song/{song_id}")

    async def update_playlist_order(self, playlist_id: str, ordered_song_ids: List[str]) -> None:
        await self._request(
            "PUT", f"/playlist/{playlist_id}/order", json={"song_ids": list(ordered_song_ids)}
        )

    async def copy_song(self, song_id: str, acting_username: str, acting_email: str) -> str:
        resp = await self._request(
            "POST",
            f"/song/{song_id}/copy",
            json={"owner_username": acting_username, "owner_email": acting_email},
        )
        return resp.json()["song"]["id"]

    async def delete_song(self, song_id: str) -> None:
        await self._request("DELETE", f"/song/{song_id}")

    async def get_playlist(self, playlist_id: str) -> PlaylistSummary:
        resp = await self._request("GET", f"/playlist/{playlist_id}")
        return PlaylistSummary(**resp.json()["playlist"])

    async def rename_playlist(self, playlist_id: str, new_name: str) -> None:
        await self._request("PUT", f"/playlist/{playlist_id}", json={"name": new_name})

    async def list_playlists_owned_by(self, user_email: str) -> List[PlaylistSummary]:
        resp = await self._request("GET", "/playlists", params={"ownerEmail": user_email})
        return [PlaylistSummary(**p) for p in resp.json().get("playlists", [])]


def _detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return resp.text


async def _backoff_sleep(attempt: int) -> None:
    """Exponential backoff with jitter, capped at ``_BACKOFF_CAP``."""
    delay = min(_BACKOFF_BASE * (2 ** attempt) + random.uniform(0, _JITTER_MAX), _BACKOFF_CAP)
    logger.debug("Backoff sleep %.2fs (attempt %d)", delay, attempt + 1)
    await asyncio.sleep(delay)


def _retry_after(resp: httpx.Response) -> float | None:
    """Seconds from a ``Retry-After`` header; ``None`` when absent or an HTTP-date."""
    value = resp.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None
