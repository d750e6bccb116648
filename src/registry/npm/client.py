"""NPM registry client: fetches and caches package metadata documents."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Dict, Optional

import aiohttp

from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from common.strict_json import loads_strict
from constants import Constants
from versioning.errors import RegistryError
from versioning.models import PackageMetadata

from .cache import PackumentCache

logger = logging.getLogger(__name__)


class RegistryClient:
    """Async client for the npm registry with single-flight caching.

    Every caller asking for the same package while a request is in flight,
    or after it completed, gets that one request's outcome. Failures are
    cached too, so a broken package fails fast for the rest of the run.
    No retries are attempted.
    """

    def __init__(
        self,
        base_url: str = Constants.REGISTRY_URL_NPM,
        cache: Optional[PackumentCache] = None,
        timeout: float = Constants.REQUEST_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize the registry client.

        Args:
            base_url: Registry base URL.
            cache: Shared fetch cache; a private one is created when omitted.
            timeout: Request timeout in seconds.
            headers: Extra request headers.
        """
        self._base_url = base_url.rstrip("/") + "/"
        self._cache = cache if cache is not None else PackumentCache()
        self._timeout = timeout
        self._headers = {"Accept": Constants.ACCEPT_HEADER, "User-Agent": Constants.USER_AGENT}
        if headers:
            self._headers.update(headers)
        self._session: Optional[aiohttp.ClientSession] = None
        self.fetch_count = 0

    @property
    def cache(self) -> PackumentCache:
        return self._cache

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._headers,
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "RegistryClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def package_url(self, package_name: str) -> str:
        """Registry URL for a package; ``/`` in scoped names becomes ``%2F``."""
        return self._base_url + package_name.replace("/", "%2F")

    async def fetch(self, package_name: str) -> PackageMetadata:
        """Get metadata for a package, issuing at most one request per URL.

        Args:
            package_name: Package name, scoped or not.

        Returns:
            PackageMetadata for the package.

        Raises:
            RegistryError: on transport, HTTP status, decode or shape errors.
        """
        if not package_name:
            raise RegistryError(package_name, "package name is empty")
        url = self.package_url(package_name)

        entry = self._cache.get(url)
        if entry is None:
            task = asyncio.ensure_future(self._fetch_document(package_name, url))
            entry = self._cache.set_if_absent(url, task)
            task.add_done_callback(functools.partial(self._on_fetch_done, url))
        elif is_debug_enabled(logger):
            logger.debug(
                "Registry cache hit",
                extra=extra_context(
                    event="cache_hit",
                    component="registry_client",
                    target=safe_url(url),
                    outcome="pending" if not entry.task.done() else "completed",
                ),
            )

        entry.waiters += 1
        try:
            return await asyncio.shield(entry.task)
        finally:
            entry.waiters -= 1
            if entry.waiters == 0 and not entry.task.done():
                # Every waiter was cancelled; nobody needs this request anymore.
                entry.task.cancel()

    def _on_fetch_done(self, url: str, task: "asyncio.Future[PackageMetadata]") -> None:
        if task.cancelled():
            self._cache.discard(url, task)
            logger.debug("Registry fetch cancelled: %s", safe_url(url))

    async def _fetch_document(self, package_name: str, url: str) -> PackageMetadata:
        logger.debug("Getting package.json from %r...", package_name)
        self.fetch_count += 1
        safe_target = safe_url(url)
        with Timer() as timer:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="registry_client",
                        action="GET",
                        target=safe_target,
                        package_manager="npm",
                    ),
                )
            try:
                status, body = await self._get(url)
            except asyncio.TimeoutError as exc:
                logger.error("npm request timed out after %s seconds", self._timeout)
                raise RegistryError(package_name, f"request timed out after {self._timeout} seconds") from exc
            except aiohttp.ClientError as exc:
                logger.error("npm connection error: %s", exc)
                raise RegistryError(package_name, f"connection error: {exc}") from exc

        if not 200 <= status < 300:
            logger.warning(
                "HTTP non-2xx from registry",
                extra=extra_context(
                    event="http_response",
                    outcome="non_2xx",
                    status_code=status,
                    duration_ms=timer.duration_ms(),
                    target=safe_target,
                    package_manager="npm",
                ),
            )
            raise RegistryError(package_name, f"HTTP {status}", status=status)

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response ok",
                extra=extra_context(
                    event="http_response",
                    outcome="success",
                    status_code=status,
                    duration_ms=timer.duration_ms(),
                    target=safe_target,
                    package_manager="npm",
                ),
            )

        try:
            document = loads_strict(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise RegistryError(package_name, f"invalid JSON: {exc}") from exc
        return PackageMetadata.from_document(document, package_name)

    async def _get(self, url: str):
        """Perform the GET and read the whole body; returns ``(status, bytes)``."""
        if self._session is None:
            await self.start()
        assert self._session is not None
        async with self._session.get(url) as response:
            body = await response.read()
            return response.status, body
