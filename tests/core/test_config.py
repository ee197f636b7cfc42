from pathlib import Path

import pytest

from syncwave.core.config import Settings, default_data_dir, settings
from syncwave.core.scanner_config import ScannerConfig


def test_config_paths():
    """Verify that paths are correctly resolved."""
    assert isinstance(settings.DATA_DIR, Path)
    assert settings.LOG_PATH.parent == settings.DATA_DIR / "logs"


def test_data_dir_creation():
    """Verify DATA_DIR exists (it should be created on import)."""
    assert settings.DATA_DIR.exists()
    assert settings.DATA_DIR.is_dir()


def test_data_dir_defaults_to_home(monkeypatch, tmp_path):
    monkeypatch.delenv("SYNCWAVE_DATA_DIR", raising=False)
    monkeypatch.delenv("DATA_DIR", raising=False)
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    assert default_data_dir() == tmp_path / ".syncwave"
    assert Settings(_env_file=None).DATA_DIR == tmp_path / ".syncwave"


def test_data_dir_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv("SYNCWAVE_DATA_DIR", str(tmp_path / "state"))
    monkeypatch.delenv("DATA_DIR", raising=False)
    assert Settings(_env_file=None).DATA_DIR == tmp_path / "state"


def test_default_library_settings():
    fresh = Settings()
    assert ".mp3" in fresh.SUPPORTED_EXTENSIONS
    assert ".opus" in fresh.SUPPORTED_EXTENSIONS
    assert "node_modules" in fresh.EXCLUDED_DIRS
    assert fresh.PORT == 3456
    assert fresh.WATCH_DEBOUNCE_DELAY > 0


def test_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv("MUSIC_DIRECTORIES", f'["{tmp_path.as_posix()}"]')
    monkeypatch.setenv("WATCH_ENABLED", "false")
    fresh = Settings()
    assert fresh.MUSIC_DIRECTORIES == [tmp_path]
    assert fresh.WATCH_ENABLED is False


class TestScannerConfig:
    def test_defaults(self):
        config = ScannerConfig()
        assert config.max_concurrent_files == 10
        assert config.metadata_workers == 8

    def test_computed_workers(self):
        assert ScannerConfig(max_concurrent_files=2).metadata_workers == 4

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_concurrent_files": 0},
            {"metadata_workers": 0},
            {"progress_log_interval": 0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ScannerConfig(**kwargs)
