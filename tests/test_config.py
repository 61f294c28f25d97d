"""Tests for flickrkit.config -- XDG paths, endpoint override, atomic writes."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from flickrkit.config import (
    ENDPOINT_ENV_VAR,
    atomic_write,
    default_cache_file,
    get_cache_dir,
    resolve_endpoint_url,
)
from flickrkit.models import REST_ENDPOINT_URL


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_cache_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("flickrkit.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_cache_dir()
        assert result == tmp_path / ".cache" / "flickrkit"
        assert result.is_dir()

    def test_cache_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_cache"
        monkeypatch.setattr("flickrkit.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(custom))

        result = get_cache_dir()
        assert result == custom / "flickrkit"
        assert result.is_dir()

    def test_empty_xdg_var_uses_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("flickrkit.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", "")
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_cache_dir() == tmp_path / ".cache" / "flickrkit"


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("flickrkit.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_cache_dir()
        assert result == tmp_path / ".flickrkit" / "cache"
        assert result.is_dir()


class TestDefaultCacheFile:
    def test_inside_cache_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("flickrkit.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))

        result = default_cache_file()
        assert result == tmp_path / "flickrkit" / "responses.json"
        assert not result.exists()


# ---------------------------------------------------------------------------
# Endpoint override
# ---------------------------------------------------------------------------


class TestResolveEndpoint:
    def test_default(self) -> None:
        assert resolve_endpoint_url() == REST_ENDPOINT_URL

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENDPOINT_ENV_VAR, "https://proxy.test/rest/")
        assert resolve_endpoint_url() == "https://proxy.test/rest/"

    def test_empty_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENDPOINT_ENV_VAR, "")
        assert resolve_endpoint_url() == REST_ENDPOINT_URL

    def test_explicit_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENDPOINT_ENV_VAR, "https://proxy.test/rest/")
        assert resolve_endpoint_url("https://mine.test/") == "https://mine.test/"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "test.json"
        atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "test.json"
        target.write_text("old content", encoding="utf-8")
        atomic_write(target, "new content")
        assert target.read_text(encoding="utf-8") == "new content"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "c" / "test.json"
        atomic_write(target, "deep write")
        assert target.read_text(encoding="utf-8") == "deep write"

    def test_no_temp_files_left_on_success(self, tmp_path: Path) -> None:
        target = tmp_path / "out" / "test.json"
        atomic_write(target, "content")
        assert list(target.parent.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "out" / "test.json"
        with patch("flickrkit.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                atomic_write(target, "will fail")
        assert list(target.parent.iterdir()) == []

    def test_unicode_content(self, tmp_path: Path) -> None:
        target = tmp_path / "unicode.json"
        content = "Hello 世界 \U0001f30d éàüñ"
        atomic_write(target, content)
        assert target.read_text(encoding="utf-8") == content
