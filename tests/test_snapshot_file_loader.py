# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-06
# Description: test_snapshot_file_loader
# -----------------------------------------------------------------------------
import json

import pytest
from azure.core.exceptions import ResourceNotFoundError

from config.Config import Config
from ingestion.SnapshotFileLoader import SnapshotFileLoader
from progress.ProgressStore import ProgressStore

CFG = Config(
    storage_account="moviesnapshots",
    storage_key="a2V5",
    snapshot_container="snapshots",
    snapshot_blob="embeddings.json",
)

SNAPSHOT = json.dumps({"embeddings": [{"ID": "1", "title_embedding": [0.0, 0.0]}], "lastProcessedIndex": 1})


class FakeDownloader:
    def __init__(self, payload: bytes):
        self.payload = payload

    def readinto(self, stream):
        stream.write(self.payload)
        return len(self.payload)


class FakeBlobClient:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error

    def download_blob(self):
        if self.error is not None:
            raise self.error
        return FakeDownloader(self.payload)


class FakeBlobService:
    def __init__(self, blob_client):
        self.blob_client = blob_client
        self.requested = []

    def get_blob_client(self, container, blob):
        self.requested.append((container, blob))
        return self.blob_client


def test_download_snapshot_writes_destination(tmp_path):
    service = FakeBlobService(FakeBlobClient(payload=SNAPSHOT.encode("utf-8")))
    loader = SnapshotFileLoader(CFG, blob_service=service)
    dest = tmp_path / "data" / "embeddings.json"

    path = loader.download_snapshot(dest)

    assert path == dest
    assert service.requested == [("snapshots", "embeddings.json")]
    assert dest.read_text(encoding="utf-8") == SNAPSHOT
    assert not dest.with_name("embeddings.json.download").exists()


def test_missing_blob_is_reraised_without_partial_file(tmp_path):
    service = FakeBlobService(FakeBlobClient(error=ResourceNotFoundError("BlobNotFound")))
    loader = SnapshotFileLoader(CFG, blob_service=service)
    dest = tmp_path / "embeddings.json"

    with pytest.raises(ResourceNotFoundError):
        loader.download_snapshot(dest)

    assert not dest.exists()
    assert not dest.with_name("embeddings.json.download").exists()


def test_progress_store_resumes_from_snapshot(tmp_path):
    service = FakeBlobService(FakeBlobClient(payload=SNAPSHOT.encode("utf-8")))
    store = ProgressStore(tmp_path / "embeddings.json", snapshot_loader=SnapshotFileLoader(CFG, blob_service=service))

    state = store.load()

    assert [r["ID"] for r in state.results] == ["1"]
    assert state.resume_offset == 1


def test_progress_store_survives_missing_snapshot(tmp_path):
    service = FakeBlobService(FakeBlobClient(error=ResourceNotFoundError("BlobNotFound")))
    store = ProgressStore(tmp_path / "embeddings.json", snapshot_loader=SnapshotFileLoader(CFG, blob_service=service))

    state = store.load()

    assert state.results == []
