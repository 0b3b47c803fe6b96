"""Tests for r2_sync.mcp.lifespan -- server startup/shutdown lifecycle.

Tests the server_lifespan() async context manager which:
- Resolves config (with optional CLI overrides)
- Builds the SyncEngine and validates the bucket connection
- Starts without a connection check when settings are incomplete
- Runs the auto-sync scheduler when enabled
- Fails fast on config errors or connection failures
"""

from unittest.mock import MagicMock, patch

import pytest

from r2_sync.config import Config
from r2_sync.errors import ListingError
from r2_sync.mcp.lifespan import server_lifespan

# -------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------


def _make_config(**overrides):
    """Create a complete Config for testing."""
    defaults = {
        "bucket_name": "notes",
        "endpoint": "https://acct.r2.cloudflarestorage.com",
        "access_key_id": "AKIDEXAMPLE",
        "secret_access_key": "secret-example",
    }
    defaults.update(overrides)
    return Config(**defaults)


@pytest.fixture
def stderr_print():
    with patch("r2_sync.mcp.lifespan._stderr_print") as mock_print:
        yield mock_print


def _printed(mock_print) -> str:
    return "\n".join(call.args[0] for call in mock_print.call_args_list)


# -------------------------------------------------------------------------
# server_lifespan() -- startup
# -------------------------------------------------------------------------


class TestServerLifespanStartup:
    async def test_successful_startup(self, stderr_print):
        mock_engine = MagicMock()
        config = _make_config()

        with (
            patch(
                "r2_sync.mcp.lifespan.resolve_config", return_value=config
            ),
            patch(
                "r2_sync.mcp.lifespan.SyncEngine", return_value=mock_engine
            ),
            patch(
                "r2_sync.mcp.lifespan.run_sync", return_value=4
            ) as mock_run_sync,
        ):
            async with server_lifespan() as ctx:
                assert ctx["engine"] is mock_engine
                assert ctx["scheduler"] is None
                mock_run_sync.assert_called_once_with(
                    mock_engine.test_connection
                )

        assert "Connected: 4 documents in bucket" in _printed(stderr_print)

    async def test_only_config_keys_forwarded(self, stderr_print):
        with (
            patch(
                "r2_sync.mcp.lifespan.resolve_config",
                return_value=_make_config(),
            ) as mock_resolve,
            patch("r2_sync.mcp.lifespan.SyncEngine"),
            patch("r2_sync.mcp.lifespan.run_sync", return_value=0),
        ):
            async with server_lifespan(
                config_overrides={"bucket_name": "b", "log_file": "/tmp/x"}
            ):
                pass

        mock_resolve.assert_called_once_with({"bucket_name": "b"})

    async def test_incomplete_config_starts_without_check(self, stderr_print):
        with (
            patch(
                "r2_sync.mcp.lifespan.resolve_config",
                return_value=Config(bucket_name="notes"),
            ),
            patch("r2_sync.mcp.lifespan.SyncEngine"),
            patch("r2_sync.mcp.lifespan.run_sync") as mock_run_sync,
        ):
            async with server_lifespan() as ctx:
                assert ctx["engine"] is not None

        mock_run_sync.assert_not_called()
        assert "connection settings incomplete" in _printed(stderr_print)
        assert "endpoint" in _printed(stderr_print)

    async def test_real_engine_is_built(self, stderr_print, tmp_path):
        config = Config(vault_root=str(tmp_path), sync_folder="Notes")
        with patch(
            "r2_sync.mcp.lifespan.resolve_config", return_value=config
        ):
            async with server_lifespan() as ctx:
                engine = ctx["engine"]
                assert engine.config is config
                assert engine.store.vault_root == tmp_path.resolve()


# -------------------------------------------------------------------------
# server_lifespan() -- failures
# -------------------------------------------------------------------------


class TestServerLifespanFailures:
    async def test_config_error(self, stderr_print):
        with patch(
            "r2_sync.mcp.lifespan.resolve_config",
            side_effect=ValueError("Invalid R2_SYNC_INTERVAL"),
        ):
            with pytest.raises(RuntimeError, match="Configuration error"):
                async with server_lifespan():
                    pass

    async def test_connection_failure(self, stderr_print):
        with (
            patch(
                "r2_sync.mcp.lifespan.resolve_config",
                return_value=_make_config(),
            ),
            patch("r2_sync.mcp.lifespan.SyncEngine"),
            patch(
                "r2_sync.mcp.lifespan.run_sync",
                side_effect=ListingError(403, "denied"),
            ),
        ):
            with pytest.raises(RuntimeError, match="403 - denied"):
                async with server_lifespan():
                    pass

        assert "Bucket connection failed" in _printed(stderr_print)


# -------------------------------------------------------------------------
# server_lifespan() -- auto sync
# -------------------------------------------------------------------------


class TestServerLifespanAutoSync:
    async def test_scheduler_started_and_stopped(self, stderr_print):
        scheduler = MagicMock()
        config = _make_config(auto_sync=True, sync_interval=10)

        with (
            patch(
                "r2_sync.mcp.lifespan.resolve_config", return_value=config
            ),
            patch("r2_sync.mcp.lifespan.SyncEngine"),
            patch("r2_sync.mcp.lifespan.run_sync", return_value=0),
            patch(
                "r2_sync.mcp.lifespan.AutoSyncScheduler",
                return_value=scheduler,
            ) as mock_cls,
        ):
            async with server_lifespan() as ctx:
                assert ctx["scheduler"] is scheduler
                scheduler.start.assert_called_once_with()
                scheduler.stop.assert_not_called()

        assert mock_cls.call_args.args[1] == 10
        scheduler.stop.assert_called_once_with()

    async def test_tick_runs_engine_sync(self, stderr_print):
        mock_engine = MagicMock()
        config = _make_config(auto_sync=True)

        with (
            patch(
                "r2_sync.mcp.lifespan.resolve_config", return_value=config
            ),
            patch(
                "r2_sync.mcp.lifespan.SyncEngine", return_value=mock_engine
            ),
            patch("r2_sync.mcp.lifespan.run_sync", return_value=0),
            patch("r2_sync.mcp.lifespan.AutoSyncScheduler") as mock_cls,
        ):
            async with server_lifespan():
                tick = mock_cls.call_args.args[0]
                tick()

        mock_engine.run_sync.assert_called_once_with()
