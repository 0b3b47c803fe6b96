"""Tests for the sync engine.

The engine is exercised with an in-memory bucket and a real
``LocalDocumentStore`` on ``tmp_path``.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from r2_sync.core.client import ObjectStoreClient
from r2_sync.errors import (
    ConfigurationIncompleteError,
    ListingError,
    SyncFolderNotFoundError,
    TransferError,
)
from r2_sync.file_handler import LocalDocumentStore
from r2_sync.sync.engine import SyncEngine
from r2_sync.sync.models import SyncMode, TransferDirection

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeBucket:
    """In-memory ObjectStoreClient replacement.

    Keys are listed in insertion order; ``fail_on`` keys raise on transfer.
    """

    def __init__(
        self,
        objects: dict[str, str] | None = None,
        fail_on: set[str] | None = None,
        listing_error: Exception | None = None,
    ) -> None:
        self.objects: dict[str, str] = dict(objects or {})
        self.fail_on = fail_on or set()
        self.listing_error = listing_error
        self.calls: list[tuple[str, str]] = []

    def list_objects(self) -> list[str]:
        self.calls.append(("list", ""))
        if self.listing_error is not None:
            raise self.listing_error
        return list(self.objects)

    def upload_object(self, key: str, content: str) -> None:
        self.calls.append(("put", key))
        if key in self.fail_on:
            raise TransferError(500, "upload rejected")
        self.objects[key] = content

    def download_object(self, key: str) -> str:
        self.calls.append(("get", key))
        if key in self.fail_on:
            raise TransferError(404, "NoSuchKey")
        return self.objects[key]


def _write(root: Path, rel: str, content: str = "# note") -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _engine(config, bucket: FakeBucket) -> SyncEngine:
    return SyncEngine(
        client=bucket,
        store=LocalDocumentStore(config.vault_root),
        config=config,
    )


# ---------------------------------------------------------------------------
# Configuration checks
# ---------------------------------------------------------------------------


class TestConfigurationGate:
    @pytest.mark.parametrize(
        "method", ["upload_all", "download_all", "sync", "plan", "test_connection"]
    )
    def test_incomplete_config_raises_before_network(self, mock_config, method):
        mock_config.secret_access_key = ""
        client = MagicMock()
        engine = SyncEngine(
            client=client,
            store=LocalDocumentStore(mock_config.vault_root),
            config=mock_config,
        )
        with pytest.raises(ConfigurationIncompleteError) as exc_info:
            getattr(engine, method)()
        assert exc_info.value.missing == ["secret_access_key"]
        assert client.method_calls == []

    def test_reports_every_missing_field(self, mock_config):
        mock_config.bucket_name = ""
        mock_config.endpoint = ""
        with pytest.raises(ConfigurationIncompleteError) as exc_info:
            _engine(mock_config, FakeBucket()).sync()
        assert exc_info.value.missing == ["bucket_name", "endpoint"]

    @pytest.mark.parametrize("endpoint", ["https://", "https:///", " / "])
    def test_endpoint_without_host_aborts_upload(
        self, mock_config, tmp_path, fake_transport, endpoint
    ):
        _write(tmp_path, "a.md")
        _write(tmp_path, "b.md")
        mock_config.endpoint = endpoint
        transport = fake_transport()
        engine = SyncEngine(
            client=ObjectStoreClient(mock_config, transport=transport),
            store=LocalDocumentStore(mock_config.vault_root),
            config=mock_config,
        )

        with pytest.raises(ConfigurationIncompleteError) as exc_info:
            engine.upload_all()

        assert exc_info.value.missing == ["endpoint"]
        assert transport.calls == []


# ---------------------------------------------------------------------------
# Upload all
# ---------------------------------------------------------------------------


class TestUploadAll:
    def test_uploads_only_markdown(self, mock_config, tmp_path):
        _write(tmp_path, "a.md", "A")
        _write(tmp_path, "b.txt", "B")
        _write(tmp_path, "dir/c.md", "C")
        _write(tmp_path, "dir/d.MD", "D")
        bucket = FakeBucket()

        outcome = _engine(mock_config, bucket).upload_all()

        assert outcome.direction == TransferDirection.UPLOAD
        assert outcome.succeeded == 2
        assert outcome.failed == []
        assert bucket.objects == {"a.md": "A", "dir/c.md": "C"}

    def test_overwrites_existing_remote(self, mock_config, tmp_path):
        _write(tmp_path, "a.md", "new")
        bucket = FakeBucket({"a.md": "old"})

        _engine(mock_config, bucket).upload_all()

        assert bucket.objects["a.md"] == "new"
        assert ("list", "") not in bucket.calls

    def test_batch_continues_after_failure(self, mock_config, tmp_path):
        for i in range(10):
            _write(tmp_path, f"n{i}.md", str(i))
        bucket = FakeBucket(fail_on={"n4.md"})

        outcome = _engine(mock_config, bucket).upload_all()

        assert outcome.succeeded == 9
        assert outcome.failed_count == 1
        failure = outcome.failed[0]
        assert failure.key == "n4.md"
        assert failure.error == "500 - upload rejected"
        assert [k for op, k in bucket.calls if op == "put"] == [
            f"n{i}.md" for i in range(10)
        ]

    def test_strips_sync_folder(self, mock_config, tmp_path):
        mock_config.sync_folder = "Notes"
        _write(tmp_path, "Notes/a.md", "A")
        _write(tmp_path, "Notes/sub/b.md", "B")
        _write(tmp_path, "Other/c.md", "C")
        bucket = FakeBucket()

        outcome = _engine(mock_config, bucket).upload_all()

        assert outcome.succeeded == 2
        assert set(bucket.objects) == {"a.md", "sub/b.md"}

    def test_missing_sync_folder_aborts(self, mock_config):
        mock_config.sync_folder = "Nope"
        bucket = FakeBucket()
        with pytest.raises(SyncFolderNotFoundError):
            _engine(mock_config, bucket).upload_all()
        assert bucket.calls == []

    def test_empty_vault(self, mock_config):
        outcome = _engine(mock_config, FakeBucket()).upload_all()
        assert outcome.succeeded == 0
        assert outcome.attempted == 0


# ---------------------------------------------------------------------------
# Download all
# ---------------------------------------------------------------------------


class TestDownloadAll:
    def test_downloads_and_overwrites(self, mock_config, tmp_path):
        _write(tmp_path, "a.md", "local")
        bucket = FakeBucket({"a.md": "remote", "deep/x/y.md": "Y"})

        outcome = _engine(mock_config, bucket).download_all()

        assert outcome.direction == TransferDirection.DOWNLOAD
        assert outcome.succeeded == 2
        assert (tmp_path / "a.md").read_text(encoding="utf-8") == "remote"
        assert (tmp_path / "deep/x/y.md").read_text(encoding="utf-8") == "Y"

    def test_prefixes_sync_folder(self, mock_config, tmp_path):
        mock_config.sync_folder = "Notes"
        bucket = FakeBucket({"a.md": "A"})

        _engine(mock_config, bucket).download_all()

        assert (tmp_path / "Notes/a.md").read_text(encoding="utf-8") == "A"

    def test_listing_failure_aborts(self, mock_config):
        bucket = FakeBucket(listing_error=ListingError(403, "denied"))
        with pytest.raises(ListingError):
            _engine(mock_config, bucket).download_all()
        assert bucket.calls == [("list", "")]

    def test_records_failed_download(self, mock_config, tmp_path):
        bucket = FakeBucket({"a.md": "A", "b.md": "B"}, fail_on={"a.md"})

        outcome = _engine(mock_config, bucket).download_all()

        assert outcome.succeeded == 1
        assert outcome.failed[0].key == "a.md"
        assert outcome.failed[0].error == "404 - NoSuchKey"
        assert not (tmp_path / "a.md").exists()

    def test_unwritable_target_is_per_object(self, mock_config, tmp_path):
        # A directory already occupies the path of the first key
        (tmp_path / "a.md").mkdir()
        bucket = FakeBucket({"a.md": "A", "b.md": "B"})

        outcome = _engine(mock_config, bucket).download_all()

        assert outcome.succeeded == 1
        assert [f.key for f in outcome.failed] == ["a.md"]


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class TestSync:
    def test_presence_only(self, mock_config, tmp_path):
        _write(tmp_path, "a.md", "A-local")
        _write(tmp_path, "b.md", "B-local")
        bucket = FakeBucket({"b.md": "B-remote", "c.md": "C"})

        report = _engine(mock_config, bucket).sync()

        assert report.mode == SyncMode.SYNC
        assert report.uploaded == 1
        assert report.downloaded == 1
        assert report.ok
        assert bucket.objects["a.md"] == "A-local"
        # Present on both sides: untouched in both directions
        assert bucket.objects["b.md"] == "B-remote"
        assert (tmp_path / "b.md").read_text(encoding="utf-8") == "B-local"
        assert (tmp_path / "c.md").read_text(encoding="utf-8") == "C"

    def test_uploads_before_downloads(self, mock_config, tmp_path):
        _write(tmp_path, "up1.md")
        _write(tmp_path, "up2.md")
        bucket = FakeBucket({"down1.md": "x", "down2.md": "y"})

        _engine(mock_config, bucket).sync()

        ops = [op for op, _ in bucket.calls if op != "list"]
        assert ops == ["put", "put", "get", "get"]

    def test_second_sync_is_noop(self, mock_config, tmp_path):
        _write(tmp_path, "a.md")
        bucket = FakeBucket({"c.md": "C"})
        engine = _engine(mock_config, bucket)

        engine.sync()
        bucket.calls.clear()
        report = engine.sync()

        assert report.uploaded == 0
        assert report.downloaded == 0
        assert bucket.calls == [("list", "")]

    def test_failures_from_both_directions(self, mock_config, tmp_path):
        _write(tmp_path, "bad-up.md")
        bucket = FakeBucket({"bad-down.md": "x"}, fail_on={"bad-up.md", "bad-down.md"})

        report = _engine(mock_config, bucket).sync()

        assert not report.ok
        assert [(f.direction, f.key) for f in report.failures] == [
            (TransferDirection.UPLOAD, "bad-up.md"),
            (TransferDirection.DOWNLOAD, "bad-down.md"),
        ]
        assert report.completed_at is not None

    def test_listing_failure_transfers_nothing(self, mock_config, tmp_path):
        _write(tmp_path, "a.md")
        bucket = FakeBucket(listing_error=ListingError(500, "boom"))
        with pytest.raises(ListingError):
            _engine(mock_config, bucket).sync()
        assert bucket.calls == [("list", "")]

    def test_run_sync_delegates(self, mock_config):
        report = _engine(mock_config, FakeBucket()).run_sync()
        assert report.mode == SyncMode.SYNC


# ---------------------------------------------------------------------------
# Plan, connection test, run(mode)
# ---------------------------------------------------------------------------


class TestPlanAndConnection:
    def test_plan_transfers_nothing(self, mock_config, tmp_path):
        _write(tmp_path, "a.md")
        bucket = FakeBucket({"c.md": "C"})

        plan = _engine(mock_config, bucket).plan()

        assert plan.to_upload == {"a.md"}
        assert plan.to_download == {"c.md"}
        assert bucket.calls == [("list", "")]
        assert not (tmp_path / "c.md").exists()

    def test_connection_counts_documents(self, mock_config):
        bucket = FakeBucket({"a.md": "", "b.md": ""})
        assert _engine(mock_config, bucket).test_connection() == 2

    def test_connection_propagates_listing_error(self, mock_config):
        bucket = FakeBucket(listing_error=ListingError(401, "bad key"))
        with pytest.raises(ListingError):
            _engine(mock_config, bucket).test_connection()


class TestRun:
    def test_upload_mode(self, mock_config, tmp_path):
        _write(tmp_path, "a.md")
        report = _engine(mock_config, FakeBucket()).run(SyncMode.UPLOAD_ALL)
        assert report.mode == SyncMode.UPLOAD_ALL
        assert report.uploaded == 1
        assert report.download is None

    def test_download_mode(self, mock_config):
        report = _engine(mock_config, FakeBucket({"a.md": "A"})).run(
            SyncMode.DOWNLOAD_ALL
        )
        assert report.mode == SyncMode.DOWNLOAD_ALL
        assert report.downloaded == 1
        assert report.upload is None


class TestRoundTrip:
    def test_upload_then_download_into_fresh_vault(self, mock_config, tmp_path):
        source = tmp_path / "source"
        target = tmp_path / "target"
        _write(source, "Notes/日记.md", "# 你好\n")
        _write(source, "Notes/sub/todo.md", "- [ ] x\n")
        bucket = FakeBucket()

        mock_config.vault_root = str(source)
        mock_config.sync_folder = "Notes"
        _engine(mock_config, bucket).upload_all()

        target.mkdir()
        mock_config.vault_root = str(target)
        _engine(mock_config, bucket).download_all()

        assert (target / "Notes/日记.md").read_text(encoding="utf-8") == "# 你好\n"
        assert (target / "Notes/sub/todo.md").read_text(encoding="utf-8") == (
            "- [ ] x\n"
        )
