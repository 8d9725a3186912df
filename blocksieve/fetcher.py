#!/usr/bin/env python3
"""
fetcher.py - Remote Blocklist Sources with Smart Caching

Blocklists are usually published over HTTP. Source arguments that are URLs
are downloaded here, BEFORE any line is processed, into a cache directory.
The pipeline then reads the cached copies in their original argument
position, so the sequential line processing never sees the network.

Concurrency stops here: every download completes before the first line is
read, and lines are then matched, counted and reduced one at a time in
argument order, so downloads never affect the result.

Caching:
    state.json keeps the ETag/Last-Modified of every URL. A 304 reply reuses
    the cached file. A failed download (HTTP error, timeout, connection
    error) falls back to the cached file if one exists.
"""
from __future__ import annotations

import asyncio
import hashlib
import json
import os
import sys
import time
from pathlib import Path
from typing import Final, NamedTuple
from urllib.parse import urlparse

import aiofiles
import aiohttp

from blocksieve.errors import SourceReadError


# Default configuration
DEFAULT_TIMEOUT: Final[int] = 30
DEFAULT_RETRIES: Final[int] = 3
DEFAULT_CONCURRENCY: Final[int] = 8

# State file for ETag/Last-Modified tracking
STATE_FILE: Final[str] = "state.json"

#: Environment override for the cache directory
CACHE_ENV: Final[str] = "BLOCKSIEVE_CACHE"


class FetchResult(NamedTuple):
    """Result of a single fetch operation."""
    url: str
    path: Path | None
    changed: bool
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.path is not None


def is_url(source: str) -> bool:
    """True for http:// and https:// sources."""
    return urlparse(source).scheme in ("http", "https")


def default_cache_dir() -> Path:
    """$BLOCKSIEVE_CACHE, else $XDG_CACHE_HOME/blocksieve, else ~/.cache/blocksieve."""
    if os.environ.get(CACHE_ENV):
        return Path(os.environ[CACHE_ENV])
    base = os.environ.get("XDG_CACHE_HOME") or Path.home() / ".cache"
    return Path(base) / "blocksieve"


def url_to_filename(url: str) -> str:
    """Generate a safe, unique filename from a URL."""
    # Use SHA256 hash for uniqueness, take first 16 chars
    url_hash = hashlib.sha256(url.encode()).hexdigest()[:16]
    # Host name for readability
    host = (urlparse(url).hostname or "unknown").replace(".", "_")[:30]
    return f"{host}_{url_hash}.txt"


def load_state(cache_dir: Path) -> dict:
    """Load state.json containing ETag/Last-Modified cache."""
    state_path = cache_dir / STATE_FILE
    if state_path.exists():
        try:
            with open(state_path, encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            print(f"⚠️  Could not load {state_path}: {e}", file=sys.stderr)
    return {}


def save_state(cache_dir: Path, state: dict) -> None:
    """Save state.json atomically."""
    state_path = cache_dir / STATE_FILE
    temp_path = state_path.with_suffix(".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(state, f, indent=2, sort_keys=True)
        temp_path.replace(state_path)
    except OSError as e:
        print(f"⚠️  Could not save {state_path}: {e}", file=sys.stderr)


def _fallback(url: str, cache_path: Path, error: str) -> FetchResult:
    """Serve the cached copy after a failed download, if there is one."""
    if cache_path.exists():
        return FetchResult(url, cache_path, changed=False, error=f"{error}, using cached version")
    return FetchResult(url, None, changed=False, error=error)


async def fetch_url(
    session: aiohttp.ClientSession,
    url: str,
    cache_dir: Path,
    state: dict,
    timeout: int,
    retries: int,
) -> FetchResult:
    """
    Fetch a single URL into the cache with ETag/Last-Modified revalidation.

    Returns:
        FetchResult whose path is the cached file, or None on failure
    """
    filename = url_to_filename(url)
    cache_path = cache_dir / filename

    headers = {}
    url_state = state.get(url, {})
    if cache_path.exists():
        if url_state.get("etag"):
            headers["If-None-Match"] = url_state["etag"]
        if url_state.get("last_modified"):
            headers["If-Modified-Since"] = url_state["last_modified"]

    error = "Max retries exceeded"
    for attempt in range(retries):
        if attempt:
            await asyncio.sleep(2 ** (attempt - 1))  # Exponential backoff

        try:
            async with session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:

                # 304 Not Modified - cached copy is current
                if response.status == 304:
                    return FetchResult(url, cache_path, changed=False)

                if response.status >= 400:
                    error = f"HTTP {response.status}"
                    continue

                content = await response.read()

            # Write next to the cache file, then swap it in
            temp_path = cache_path.with_suffix(".part")
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(content)
            temp_path.replace(cache_path)

            new_state = {"filename": filename}
            if "ETag" in response.headers:
                new_state["etag"] = response.headers["ETag"]
            if "Last-Modified" in response.headers:
                new_state["last_modified"] = response.headers["Last-Modified"]
            new_state["fetched_at"] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
            state[url] = new_state

            return FetchResult(url, cache_path, changed=True)

        except asyncio.TimeoutError:
            error = "Timeout"
        except aiohttp.ClientError as e:
            error = str(e) or type(e).__name__

    return _fallback(url, cache_path, error)


async def fetch_all(
    urls: list[str],
    cache_dir: Path,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: int = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
) -> list[FetchResult]:
    """Fetch all URLs concurrently with rate limiting, results in input order."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    state = load_state(cache_dir)

    semaphore = asyncio.Semaphore(concurrency)

    async def fetch_with_semaphore(url: str) -> FetchResult:
        async with semaphore:
            return await fetch_url(session, url, cache_dir, state, timeout, retries)

    connector = aiohttp.TCPConnector(limit=concurrency, limit_per_host=2)
    async with aiohttp.ClientSession(connector=connector) as session:
        results = await asyncio.gather(*(fetch_with_semaphore(url) for url in urls))

    save_state(cache_dir, state)
    return list(results)


def resolve_sources(
    sources: list[str],
    cache_dir: Path,
    *,
    timeout: int = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    concurrency: int = DEFAULT_CONCURRENCY,
    verbose: bool = False,
    quiet: bool = False,
) -> list[str]:
    """
    Replace URL sources by the paths of their downloaded copies.

    Local paths and "-" pass through untouched; order is preserved.

    Raises:
        SourceReadError: if a URL can neither be downloaded nor served from cache
    """
    urls = list(dict.fromkeys(s for s in sources if is_url(s)))
    if not urls:
        return list(sources)

    if verbose:
        print(f"🔄 Fetching {len(urls)} sources...", file=sys.stderr)

    results = asyncio.run(fetch_all(urls, cache_dir, concurrency, timeout, retries))

    paths: dict[str, str] = {}
    for result in results:
        if not result.success:
            raise SourceReadError(result.url, result.error or "download failed")
        if result.error and not quiet:
            print(f"⚠️  {result.url}: {result.error}", file=sys.stderr)
        paths[result.url] = str(result.path)

    if verbose:
        changed = sum(1 for r in results if r.changed)
        print(f"✅ Fetched: {len(results)} (changed: {changed}, cached: {len(results) - changed})",
              file=sys.stderr)

    return [paths.get(source, source) for source in sources]
