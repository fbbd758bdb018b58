"""Tests for technician ID validation and lookup."""
import pytest

from app.tech_images.owners import DuckDBTechnicianDirectory, is_valid_technician_id

from .conftest import TECH_ID


class TestIsValidTechnicianId:
    @pytest.mark.parametrize("value", [
        "65f0c2a1b2c3d4e5f6a7b8c9",
        "ABCDEFABCDEFABCDEFABCDEF",
    ])
    def test_valid(self, value):
        assert is_valid_technician_id(value)

    @pytest.mark.parametrize("value", [
        "",
        "65f0c2a1b2c3d4e5f6a7b8c",
        "65f0c2a1b2c3d4e5f6a7b8c9a",
        "zzzzzzzzzzzzzzzzzzzzzzzz",
        "65f0c2a1-b2c3-d4e5-f6a7",
    ])
    def test_invalid(self, value):
        assert not is_valid_technician_id(value)


class TestDuckDBTechnicianDirectory:
    def test_exists(self, directory):
        assert directory.exists(TECH_ID)
        assert not directory.exists("bbbbbbbbbbbbbbbbbbbbbbbb")

    def test_add_is_idempotent(self, directory):
        directory.add(TECH_ID)
        assert directory.exists(TECH_ID)

    def test_add_rejects_malformed_id(self, directory):
        with pytest.raises(ValueError):
            directory.add("nope")
