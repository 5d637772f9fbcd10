"""Tests for the threadline CLI."""
import importlib

import pytest
from typer.testing import CliRunner

from threadline.backend import InMemorySessionBackend
from threadline.errors import BackendError

# The package re-exports the Typer app under the module's name
cli_app = importlib.import_module("threadline.cli.app")

runner = CliRunner()


@pytest.fixture(autouse=True)
def memory_backend(backend, monkeypatch):
    """Point every command at the in-memory backend."""
    monkeypatch.setattr(cli_app, "get_backend", lambda *args, **kwargs: backend)
    return backend


class TestShow:
    """Tests for printing a session's active path."""

    def test_active_path(self):
        result = runner.invoke(cli_app.app, ["show", "s2"])

        assert result.exit_code == 0
        assert "write a poem" in result.output
        assert "violets are blue" in result.output
        assert "shorter please" in result.output
        assert "roses are red" not in result.output

    def test_alternate_head(self):
        """Test showing the branch that ends at another message."""
        result = runner.invoke(cli_app.app, ["show", "s2", "--head", "m2"])

        assert result.exit_code == 0
        assert "roses are red" in result.output
        assert "shorter please" not in result.output

    def test_insights(self):
        result = runner.invoke(cli_app.app, ["show", "s2", "--insights"])

        assert result.exit_code == 0
        assert "Branch Points" in result.output
        assert "fork m1" in result.output

    def test_missing_session(self):
        result = runner.invoke(cli_app.app, ["show", "nope"])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_unknown_head(self):
        result = runner.invoke(cli_app.app, ["show", "s1", "--head", "zzz"])

        assert result.exit_code == 1


class TestSessions:
    """Tests for listing sessions."""

    def test_lists_both_sources(self):
        result = runner.invoke(cli_app.app, ["sessions"])

        assert result.exit_code == 0
        assert "core-1" in result.output
        assert "Alpha" in result.output
        assert "/work/alpha" in result.output
        assert result.output.index("core-1") < result.output.index("Poems")

    def test_backend_down(self, monkeypatch):
        """Test that an unreachable server is an error, not an empty list."""

        class DownBackend(InMemorySessionBackend):
            async def fetch_sessions(self):
                raise BackendError("connection refused")

            async def fetch_core_sessions(self):
                raise BackendError("connection refused")

        monkeypatch.setattr(cli_app, "get_backend", lambda *args, **kwargs: DownBackend())

        result = runner.invoke(cli_app.app, ["sessions"])

        assert result.exit_code == 1
        assert "session list unavailable" in result.output
        assert "No sessions found" not in result.output


class TestDelete:
    """Tests for deleting sessions."""

    def test_delete_with_yes(self, memory_backend):
        result = runner.invoke(cli_app.app, ["delete", "s1", "--yes"])

        assert result.exit_code == 0
        assert memory_backend.calls["delete_session"] == 1

    def test_delete_aborted(self, memory_backend):
        """Test that declining the prompt leaves the session alone."""
        result = runner.invoke(cli_app.app, ["delete", "s1"], input="n\n")

        assert result.exit_code == 0
        assert "Aborted" in result.output
        assert memory_backend.calls["delete_session"] == 0
