"""Tests for the npm registry client."""

import asyncio
import json
from unittest.mock import patch

import pytest

aiohttp_mod = pytest.importorskip("aiohttp")

from aiohttp import web
from aiohttp import test_utils

from fakes import packument
from registry.npm.cache import PackumentCache
from registry.npm.client import RegistryClient
from versioning.errors import RegistryError

BASE = "https://registry.example.test/"
LEFT_PAD = json.dumps(packument("left-pad", {"1.0.0": None, "1.3.0": None})).encode("utf-8")


def _client():
    return RegistryClient(BASE, cache=PackumentCache(), timeout=5)


class TestRegistryClientUrls:
    """Tests for request URL building."""

    def test_plain_package(self):
        assert _client().package_url("left-pad") == BASE + "left-pad"

    def test_scoped_package_is_percent_encoded(self):
        assert _client().package_url("@angular/core") == BASE + "@angular%2Fcore"

    def test_base_url_without_trailing_slash(self):
        client = RegistryClient("https://registry.example.test", cache=PackumentCache())
        assert client.package_url("a") == "https://registry.example.test/a"


class TestRegistryClientSingleFlight:
    """Tests for request deduplication."""

    def test_concurrent_fetches_share_one_request(self):
        """N concurrent fetches of one package issue exactly one GET."""
        client = _client()
        calls = []

        async def fake_get(url):
            calls.append(url)
            await asyncio.sleep(0.01)
            return 200, LEFT_PAD

        async def run():
            with patch.object(client, "_get", new=fake_get):
                return await asyncio.gather(*(client.fetch("left-pad") for _ in range(10)))

        results = asyncio.run(run())
        assert calls == [BASE + "left-pad"]
        assert client.fetch_count == 1
        assert all(result is results[0] for result in results)
        assert sorted(results[0].versions) == ["1.0.0", "1.3.0"]

    def test_completed_fetch_is_reused(self):
        client = _client()
        calls = []

        async def fake_get(url):
            calls.append(url)
            return 200, LEFT_PAD

        async def run():
            with patch.object(client, "_get", new=fake_get):
                first = await client.fetch("left-pad")
                second = await client.fetch("left-pad")
                return first, second

        first, second = asyncio.run(run())
        assert first is second
        assert len(calls) == 1

    def test_scoped_request_url(self):
        client = _client()
        calls = []

        async def fake_get(url):
            calls.append(url)
            return 200, json.dumps(packument("@scope/pkg", {"1.0.0": None})).encode()

        async def run():
            with patch.object(client, "_get", new=fake_get):
                return await client.fetch("@scope/pkg")

        meta = asyncio.run(run())
        assert calls == [BASE + "@scope%2Fpkg"]
        assert meta.name == "@scope/pkg"


class TestRegistryClientErrors:
    """Tests for RegistryError mapping and failure caching."""

    def _fetch_twice(self, client, fake_get, name="left-pad"):
        async def run():
            errors = []
            with patch.object(client, "_get", new=fake_get):
                for _ in range(2):
                    with pytest.raises(RegistryError) as excinfo:
                        await client.fetch(name)
                    errors.append(excinfo.value)
            return errors

        return asyncio.run(run())

    def test_non_strict_json_fails_and_is_cached(self):
        """NaN is rejected and the failure is served from cache."""
        client = _client()

        async def fake_get(url):
            return 200, b'{"name": "left-pad", "versions": {}, "score": NaN}'

        errors = self._fetch_twice(client, fake_get)
        assert client.fetch_count == 1
        assert errors[0] is errors[1]
        assert "invalid JSON" in str(errors[0])
        assert errors[0].package == "left-pad"

    def test_trailing_comma_is_rejected(self):
        client = _client()

        async def fake_get(url):
            return 200, b'{"name": "left-pad", "versions": {},}'

        errors = self._fetch_twice(client, fake_get)
        assert "invalid JSON" in errors[0].reason

    def test_non_2xx_status(self):
        client = _client()

        async def fake_get(url):
            return 404, b'{"error": "Not found"}'

        errors = self._fetch_twice(client, fake_get, "no-such-package")
        assert errors[0].status == 404
        assert str(errors[0]) == (
            "Could not get metadata for package 'no-such-package' from the registry: HTTP 404"
        )

    def test_connection_error(self):
        client = _client()

        async def fake_get(url):
            raise aiohttp_mod.ClientConnectionError("connection reset")

        errors = self._fetch_twice(client, fake_get)
        assert "connection error" in errors[0].reason
        assert client.fetch_count == 1

    def test_timeout(self):
        client = _client()

        async def fake_get(url):
            raise asyncio.TimeoutError()

        errors = self._fetch_twice(client, fake_get)
        assert "timed out" in errors[0].reason

    def test_document_without_versions(self):
        client = _client()

        async def fake_get(url):
            return 200, b'{"name": "left-pad", "dist-tags": {}}'

        errors = self._fetch_twice(client, fake_get)
        assert "versions" in errors[0].reason

    def test_document_not_an_object(self):
        client = _client()

        async def fake_get(url):
            return 200, b'["left-pad"]'

        errors = self._fetch_twice(client, fake_get)
        assert "not a JSON object" in errors[0].reason

    def test_missing_dist_tags_is_empty(self):
        client = _client()

        async def fake_get(url):
            return 200, b'{"name": "left-pad", "versions": {"1.0.0": {}}}'

        async def run():
            with patch.object(client, "_get", new=fake_get):
                return await client.fetch("left-pad")

        meta = asyncio.run(run())
        assert meta.dist_tags == {}
        assert list(meta.versions) == ["1.0.0"]

    def test_empty_name(self):
        with pytest.raises(RegistryError):
            asyncio.run(_client().fetch(""))


class TestRegistryClientCancellation:
    """Tests for cancelling waiters."""

    def test_last_waiter_cancel_cancels_request(self):
        """Cancelling the only waiter cancels the request and evicts the entry."""
        client = _client()
        calls = []

        async def run():
            started_event = asyncio.Event()

            async def slow_get(url):
                calls.append(url)
                started_event.set()
                await asyncio.sleep(10)
                return 200, LEFT_PAD

            with patch.object(client, "_get", new=slow_get):
                waiter = asyncio.ensure_future(client.fetch("left-pad"))
                await started_event.wait()
                task = client.cache.get(client.package_url("left-pad")).task
                waiter.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await waiter
                with pytest.raises(asyncio.CancelledError):
                    await task
                await asyncio.sleep(0)
                evicted = client.package_url("left-pad") not in client.cache

            async def fast_get(url):
                calls.append(url)
                return 200, LEFT_PAD

            with patch.object(client, "_get", new=fast_get):
                meta = await client.fetch("left-pad")
            return evicted, meta

        evicted, meta = asyncio.run(run())
        assert evicted is True
        assert meta.name == "left-pad"
        assert len(calls) == 2

    def test_other_waiters_keep_request_alive(self):
        """Cancelling one of two waiters leaves the shared request running."""
        client = _client()

        async def run():
            gate = asyncio.Event()

            async def gated_get(url):
                await gate.wait()
                return 200, LEFT_PAD

            with patch.object(client, "_get", new=gated_get):
                first = asyncio.ensure_future(client.fetch("left-pad"))
                second = asyncio.ensure_future(client.fetch("left-pad"))
                await asyncio.sleep(0)
                first.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await first
                gate.set()
                return await second

        meta = asyncio.run(run())
        assert meta.name == "left-pad"
        assert client.fetch_count == 1


class TestRegistryClientHttp:
    """Round trips against a local aiohttp server."""

    def _serve(self, routes, fetch_name):
        async def run():
            app = web.Application()
            for path, handler in routes.items():
                app.router.add_get(path, handler)
            server = test_utils.TestServer(app)
            await server.start_server()
            try:
                async with RegistryClient(str(server.make_url("/")), cache=PackumentCache(), timeout=5) as client:
                    try:
                        return await client.fetch(fetch_name), None
                    except RegistryError as exc:
                        return None, exc
            finally:
                await server.close()

        return asyncio.run(run())

    def test_fetch_from_server(self):
        seen_headers = {}

        async def handler(request):
            seen_headers.update(request.headers)
            return web.json_response(packument("left-pad", {"1.0.0": None, "1.3.0": {"react": "^18.0.0"}}))

        meta, error = self._serve({"/left-pad": handler}, "left-pad")
        assert error is None
        assert meta.dist_tags == {"latest": "1.3.0"}
        assert meta.peer_dependencies("1.3.0") == {"react": "^18.0.0"}
        assert seen_headers.get("Accept") == "application/json"

    def test_server_404(self):
        meta, error = self._serve({}, "missing-package")
        assert meta is None
        assert error.status == 404
