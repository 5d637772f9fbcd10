"""Unit tests for session backends."""
import asyncio
import contextlib

import aiohttp
import pytest
from aiohttp import test_utils, web

from threadline.backend import SessionSummary, create_session_backend
from threadline.backend.http import HttpSessionBackend
from threadline.errors import BackendError, HydrationError


@contextlib.asynccontextmanager
async def serve(routes, token=None, timeout=5.0):
    """Run an aiohttp app on a local port and yield a connected backend."""
    app = web.Application()
    app.add_routes(routes)
    server = test_utils.TestServer(app)
    await server.start_server()
    backend = HttpSessionBackend(str(server.make_url("/")), timeout=timeout, api_token=token)
    try:
        async with backend:
            yield backend
    finally:
        await server.close()


class TestInMemoryBackend:
    """Tests for the dict-backed backend."""

    @pytest.mark.asyncio
    async def test_fetch_session(self, backend):
        """Test fetching a stored session."""
        payload = await backend.fetch_session("s1")

        assert [m["id"] for m in payload.messages] == ["m1", "m2", "m3"]
        assert payload.session == {"workspace": "/work/alpha"}
        assert backend.calls["fetch_session"] == 1

    @pytest.mark.asyncio
    async def test_missing_session(self, backend):
        """Test that an unknown session raises with a 404 status."""
        with pytest.raises(HydrationError) as exc_info:
            await backend.fetch_session("nope")

        assert exc_info.value.status == 404
        assert exc_info.value.session_id == "nope"

    @pytest.mark.asyncio
    async def test_running_flag(self, backend):
        """Test toggling the running job flag."""
        assert not (await backend.fetch_job_status("s1")).has_running_jobs

        backend.set_running("s1")
        assert (await backend.fetch_job_status("s1")).has_running_jobs

        backend.set_running("s1", False)
        assert not (await backend.fetch_job_status("s1")).has_running_jobs

    @pytest.mark.asyncio
    async def test_failing_session(self, backend):
        """Test that a failing session breaks both fetch and status."""
        backend.set_failing("s1")

        with pytest.raises(HydrationError):
            await backend.fetch_session("s1")
        with pytest.raises(BackendError) as exc_info:
            await backend.fetch_job_status("s1")
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_delete(self, backend):
        """Test that delete removes the session and its summary."""
        await backend.delete_session("s1")

        assert [s.id for s in await backend.fetch_sessions()] == ["s2"]
        with pytest.raises(HydrationError):
            await backend.fetch_session("s1")


class TestFactory:
    """Tests for backend selection."""

    def test_memory(self):
        assert create_session_backend("memory").backend_type == "memory"

    def test_http(self):
        backend = create_session_backend("http", base_url="http://example.test/")

        assert isinstance(backend, HttpSessionBackend)
        assert backend.base_url == "http://example.test"

    def test_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported session backend"):
            create_session_backend("sqlite")


class TestSummaryModel:
    """Tests for session summary coercion."""

    def test_numeric_id(self):
        assert SessionSummary.model_validate({"id": 42}).id == "42"

    def test_iso_timestamp(self):
        summary = SessionSummary(id="a", updated_at="1970-01-01T00:00:01Z")

        assert summary.updated_timestamp() == 1000.0

    def test_unparseable_timestamp(self):
        assert SessionSummary(id="a", updated_at="yesterday").updated_timestamp() == 0.0


class TestHttpBackend:
    """Tests for the aiohttp backend against a local server."""

    @pytest.mark.asyncio
    async def test_fetch_session(self):
        """Test fetching a session's messages and metadata."""
        async def handler(request):
            assert request.match_info["session_id"] == "abc"
            return web.json_response({
                "messages": [{"id": "m1", "role": "user", "content": "hi"}],
                "session": {"workspace": "/w"},
            })

        async with serve([web.get("/api/sessions/{session_id}", handler)]) as backend:
            payload = await backend.fetch_session("abc")

        assert payload.messages[0]["id"] == "m1"
        assert payload.session == {"workspace": "/w"}

    @pytest.mark.asyncio
    async def test_missing_messages_field(self):
        """Test that a payload without messages hydrates as empty."""
        async def handler(request):
            return web.json_response({"messages": None})

        async with serve([web.get("/api/sessions/{session_id}", handler)]) as backend:
            payload = await backend.fetch_session("abc")

        assert payload.messages == []
        assert payload.session is None

    @pytest.mark.asyncio
    async def test_not_found_becomes_hydration_error(self):
        """Test that a 404 is reported as a hydration failure."""
        async def handler(request):
            return web.json_response({"error": "gone"}, status=404)

        async with serve([web.get("/api/sessions/{session_id}", handler)]) as backend:
            with pytest.raises(HydrationError) as exc_info:
                await backend.fetch_session("abc")

        assert exc_info.value.status == 404
        assert exc_info.value.session_id == "abc"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test that a non-JSON body is a backend error."""
        async def handler(request):
            return web.Response(text="<html>oops</html>")

        async with serve([web.get("/api/sessions", handler)]) as backend:
            with pytest.raises(BackendError, match="invalid JSON"):
                await backend.fetch_sessions()

    @pytest.mark.asyncio
    async def test_session_lists(self):
        """Test both list endpoints, skipping malformed entries."""
        async def persisted(request):
            return web.json_response([{"id": "s1", "title": "One"}, {"title": "no id"}])

        async def core(request):
            return web.json_response([{"id": 7, "isCore": True, "lastUpdated": 5}])

        routes = [web.get("/api/sessions", persisted), web.get("/api/sessions/core", core)]
        async with serve(routes) as backend:
            persisted_list = await backend.fetch_sessions()
            core_list = await backend.fetch_core_sessions()

        assert [s.id for s in persisted_list] == ["s1"]
        assert core_list[0].id == "7"
        assert core_list[0].is_core

    @pytest.mark.asyncio
    async def test_list_must_be_array(self):
        async def handler(request):
            return web.json_response({"sessions": []})

        async with serve([web.get("/api/sessions", handler)]) as backend:
            with pytest.raises(BackendError):
                await backend.fetch_sessions()

    @pytest.mark.asyncio
    async def test_job_status(self):
        """Test that the session id is sent as a query parameter."""
        seen = []

        async def handler(request):
            seen.append(request.query.get("sessionId"))
            return web.json_response({"hasRunningJobs": True})

        async with serve([web.get("/api/chat/status", handler)]) as backend:
            status = await backend.fetch_job_status("abc")

        assert status.has_running_jobs
        assert seen == ["abc"]

    @pytest.mark.asyncio
    async def test_bearer_token(self):
        """Test that a configured token is sent on every request."""
        seen = []

        async def handler(request):
            seen.append(request.headers.get("Authorization"))
            return web.json_response({})

        async with serve([web.get("/api/chat/status", handler)], token="secret") as backend:
            status = await backend.fetch_job_status("abc")

        assert not status.has_running_jobs
        assert seen == ["Bearer secret"]

    @pytest.mark.asyncio
    async def test_delete(self):
        """Test deleting a session with an empty 204 reply."""
        deleted = []

        async def handler(request):
            deleted.append(request.match_info["session_id"])
            return web.Response(status=204)

        async with serve([web.delete("/api/sessions/{session_id}", handler)]) as backend:
            await backend.delete_session("abc")

        assert deleted == ["abc"]

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Test that transport failures surface as backend errors."""
        async with aiohttp.ClientSession() as session:
            backend = HttpSessionBackend("http://127.0.0.1:1", timeout=2.0, session=session)
            with pytest.raises(BackendError):
                await backend.fetch_job_status("abc")
            await backend.disconnect()
            assert not session.closed

    @pytest.mark.asyncio
    async def test_timeout_becomes_hydration_error(self):
        """Test that a session fetch slower than the timeout is a hydration failure."""
        release = asyncio.Event()

        async def handler(request):
            await release.wait()
            return web.json_response({"messages": []})

        async with serve([web.get("/api/sessions/{session_id}", handler)], timeout=0.2) as backend:
            with pytest.raises(HydrationError) as exc_info:
                await backend.fetch_session("abc")
            release.set()

        assert exc_info.value.session_id == "abc"
        assert "timed out" in str(exc_info.value.__cause__)

    @pytest.mark.asyncio
    async def test_status_timeout_becomes_backend_error(self):
        release = asyncio.Event()

        async def handler(request):
            await release.wait()
            return web.json_response({})

        async with serve([web.get("/api/chat/status", handler)], timeout=0.2) as backend:
            with pytest.raises(BackendError, match="timed out"):
                await backend.fetch_job_status("abc")
            release.set()

    @pytest.mark.asyncio
    async def test_null_running_flag(self):
        """Test that a null job flag reads as idle instead of failing validation."""
        async def handler(request):
            return web.json_response({"hasRunningJobs": None})

        async with serve([web.get("/api/chat/status", handler)]) as backend:
            status = await backend.fetch_job_status("abc")

        assert status.has_running_jobs is False
