"""Tests for TempFileJanitor."""
from app.uploads.janitor import TempFileJanitor
from app.uploads.schemas import FileState

from .conftest import make_photos


class TestTempFileJanitor:
    def test_mark_uploaded_removes_file(self, tmp_path):
        (photo,) = make_photos(tmp_path, 1)

        TempFileJanitor().mark_uploaded(photo)

        assert photo.state == FileState.UPLOADED
        assert not photo.temp_path.exists()

    def test_mark_uploaded_tolerates_missing_file(self, tmp_path):
        (photo,) = make_photos(tmp_path, 1)
        photo.temp_path.unlink()

        TempFileJanitor().mark_uploaded(photo)

        assert photo.state == FileState.UPLOADED

    def test_sweep_removes_everything_not_uploaded(self, tmp_path):
        uploaded, staged, rejected = make_photos(tmp_path, 3)
        janitor = TempFileJanitor()
        janitor.mark_uploaded(uploaded)
        rejected.state = FileState.DISCARDED

        removed = janitor.sweep([uploaded, staged, rejected])

        assert removed == 2
        assert not staged.temp_path.exists()
        assert not rejected.temp_path.exists()
        assert staged.state == FileState.DISCARDED
        assert uploaded.state == FileState.UPLOADED

    def test_sweep_is_repeatable(self, tmp_path):
        photos = make_photos(tmp_path, 2)
        janitor = TempFileJanitor()

        assert janitor.sweep(photos) == 2
        assert janitor.sweep(photos) == 0
