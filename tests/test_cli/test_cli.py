"""Tests for CLI commands."""

import io
import sqlite3

import pytest
from click.testing import CliRunner
from PIL import Image

from photocache.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def photo(tmp_path, jpeg_bytes):
    path = tmp_path / "photo.jpg"
    path.write_bytes(jpeg_bytes)
    return path


@pytest.fixture
def disk_dir(tmp_path):
    return str(tmp_path / "images")


class TestCLIGroup:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "photocache" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0


class TestThumbnailCommand:
    def test_help(self, runner):
        result = runner.invoke(cli, ["thumbnail", "--help"])
        assert result.exit_code == 0
        assert "--width" in result.output
        assert "--scale" in result.output

    def test_writes_thumbnail(self, runner, photo, tmp_path, disk_dir):
        out = tmp_path / "thumb.jpg"
        result = runner.invoke(
            cli,
            ["thumbnail", str(photo), "-o", str(out), "--width", "110", "--height", "120",
             "--id", "photoA", "--disk-dir", disk_dir],
        )
        assert result.exit_code == 0, result.output
        assert Image.open(io.BytesIO(out.read_bytes())).size == (360, 240)

    def test_png_output(self, runner, photo, tmp_path, disk_dir):
        out = tmp_path / "thumb.png"
        result = runner.invoke(
            cli,
            ["thumbnail", str(photo), "-o", str(out), "--width", "50", "--height", "50",
             "--scale", "1", "--disk-dir", disk_dir],
        )
        assert result.exit_code == 0, result.output
        assert out.read_bytes().startswith(b"\x89PNG")

    def test_undecodable_input_exits_1(self, runner, tmp_path, disk_dir):
        bad = tmp_path / "broken.jpg"
        bad.write_bytes(b"not a jpeg")
        result = runner.invoke(
            cli,
            ["thumbnail", str(bad), "-o", str(tmp_path / "out.jpg"),
             "--width", "10", "--height", "10", "--disk-dir", disk_dir],
        )
        assert result.exit_code == 1

    def test_unsupported_extension_exits_1(self, runner, tmp_path, disk_dir):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")
        result = runner.invoke(
            cli,
            ["thumbnail", str(notes), "-o", str(tmp_path / "out.jpg"),
             "--width", "10", "--height", "10", "--disk-dir", disk_dir],
        )
        assert result.exit_code == 1

    def test_missing_input(self, runner):
        result = runner.invoke(cli, ["thumbnail", "nonexistent.jpg", "-o", "x.jpg",
                                     "--width", "1", "--height", "1"])
        assert result.exit_code != 0


class TestCompressCommand:
    def test_compresses(self, runner, photo, tmp_path):
        out = tmp_path / "stored.jpg"
        result = runner.invoke(
            cli, ["compress", str(photo), "-o", str(out), "--max-dimension", "400"]
        )
        assert result.exit_code == 0, result.output
        assert max(Image.open(io.BytesIO(out.read_bytes())).size) == 400

    def test_tiny_budget_warns(self, runner, photo, tmp_path):
        out = tmp_path / "stored.jpg"
        result = runner.invoke(cli, ["compress", str(photo), "-o", str(out), "--max-bytes", "10"])
        assert result.exit_code == 0
        assert out.exists()


class TestCacheCommands:
    def test_cache_help(self, runner):
        result = runner.invoke(cli, ["cache", "--help"])
        assert result.exit_code == 0
        assert "stats" in result.output
        assert "clear" in result.output
        assert "invalidate" in result.output

    def test_cache_stats(self, runner, disk_dir):
        result = runner.invoke(cli, ["cache", "stats", "--disk-dir", disk_dir])
        assert result.exit_code == 0
        assert "Cache Statistics" in result.output

    def test_cache_stats_storage_failure_exits_1(self, runner, disk_dir, monkeypatch):
        def broken_count(self):
            raise sqlite3.OperationalError("database disk image is malformed")

        monkeypatch.setattr("photocache.cache.disk.DiskImageCache._count", broken_count)
        result = runner.invoke(cli, ["cache", "stats", "--disk-dir", disk_dir])
        assert result.exit_code == 1
        assert "Traceback" not in result.output
        assert "Cache Statistics" not in result.output

    def test_cache_clear_needs_confirmation(self, runner, disk_dir):
        result = runner.invoke(cli, ["cache", "clear", "--disk-dir", disk_dir], input="n\n")
        assert result.exit_code != 0  # Aborted

    def test_cache_clear_with_yes(self, runner, disk_dir):
        result = runner.invoke(cli, ["cache", "clear", "--yes", "--disk-dir", disk_dir])
        assert result.exit_code == 0
        assert "cleared" in result.output.lower()

    def test_invalidate_removes_thumbnail(self, runner, photo, tmp_path, disk_dir):
        runner.invoke(
            cli,
            ["thumbnail", str(photo), "-o", str(tmp_path / "t.jpg"), "--width", "110",
             "--height", "120", "--id", "photoA", "--disk-dir", disk_dir],
        )
        result = runner.invoke(cli, ["cache", "invalidate", "photoA", "--disk-dir", disk_dir])
        assert result.exit_code == 0, result.output
        assert "1 disk entries" in result.output

    def test_invalidate_requires_ids(self, runner):
        result = runner.invoke(cli, ["cache", "invalidate"])
        assert result.exit_code != 0

    def test_config_file(self, runner, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text(f"cache:\n  disk_dir: {tmp_path / 'cfg-images'}\n")
        result = runner.invoke(cli, ["cache", "stats", "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "cfg-images" / "cache.db").exists()
