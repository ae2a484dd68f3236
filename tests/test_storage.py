"""Tests for local photo storage."""
import pytest

from core.errors import PhotoUploadFailure


class TestLocalObjectStorage:

    def test_upload_writes_file(self, storage):
        path = storage.upload("job-cards", "job-1/1700000000000.jpg", b"data")
        assert path == "job-1/1700000000000.jpg"
        with open(storage.url_for("job-cards", path), "rb") as f:
            assert f.read() == b"data"

    def test_never_overwrites(self, storage):
        storage.upload("job-cards", "job-1/1.jpg", b"first")
        with pytest.raises(PhotoUploadFailure):
            storage.upload("job-cards", "job-1/1.jpg", b"second")
        with open(storage.url_for("job-cards", "job-1/1.jpg"), "rb") as f:
            assert f.read() == b"first"

    def test_path_cannot_escape_bucket(self, storage):
        with pytest.raises(PhotoUploadFailure):
            storage.upload("job-cards", "../other/1.jpg", b"x")
