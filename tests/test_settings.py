"""Tests for settings loading and logging setup."""

from __future__ import annotations

import logging

import pytest

from bite.config.logging_config import setup_logging
from bite.config.settings import LoggingConfig, Settings
from bite.errors import ConfigurationError


class TestSettings:
    """Tests for Settings.load and Settings.save."""

    def test_defaults_without_file(self, tmp_path) -> None:
        settings = Settings.load(tmp_path)
        assert settings.storage.backend == "sqlite"
        assert settings.storage.database_path == tmp_path / "bite.db"
        assert settings.storage.user_config_path == tmp_path / "user.yaml"
        assert settings.progress.tolerance == 0.2

    def test_home_from_environment(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("BITE_HOME", str(tmp_path))
        assert Settings.load().home == tmp_path

    def test_save_and_load(self, tmp_path) -> None:
        settings = Settings.load(tmp_path)
        settings.storage.backend = "csv"
        settings.progress.tolerance = 0.3
        settings.save()

        loaded = Settings.load(tmp_path)
        assert loaded.storage.backend == "csv"
        assert loaded.storage.csv_path == tmp_path / "entries.csv"
        assert loaded.progress.tolerance == 0.3

    def test_partial_file(self, tmp_path) -> None:
        (tmp_path / "settings.yaml").write_text("progress:\n  maintenance_band: 0.15\n")
        settings = Settings.load(tmp_path)
        assert settings.progress.maintenance_band == 0.15
        assert settings.storage.backend == "sqlite"

    @pytest.mark.parametrize(
        "content",
        [
            "storage:\n  backend: json\n",
            "progress:\n  tolerance: 2\n",
            "progress:\n  tolerance: lots\n",
            "storage: [unclosed\n",
            "- a\n- b\n",
        ],
    )
    def test_invalid_file_raises(self, tmp_path, content: str) -> None:
        (tmp_path / "settings.yaml").write_text(content)
        with pytest.raises(ConfigurationError):
            Settings.load(tmp_path)

    def test_unreadable_file_raises(self, tmp_path) -> None:
        (tmp_path / "settings.yaml").mkdir()
        with pytest.raises(ConfigurationError, match="Can't read"):
            Settings.load(tmp_path)

    def test_unwritable_home_raises(self, tmp_path) -> None:
        home = tmp_path / "home"
        home.write_text("not a directory")
        with pytest.raises(ConfigurationError, match="Can't write"):
            Settings(home=home).save()


class TestLogging:
    """Tests for setup_logging."""

    def test_level_and_file_handler(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "bite.log"
        logger = setup_logging(
            LoggingConfig(level="debug", file=log_file, console=False),
            logger_name="bite.test",
        )
        logger.debug("hello")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert "hello" in log_file.read_text()

        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_unopenable_log_file_raises(self, tmp_path) -> None:
        blocker = tmp_path / "logs"
        blocker.write_text("not a directory")
        with pytest.raises(ConfigurationError):
            setup_logging(
                LoggingConfig(file=blocker / "bite.log", console=False),
                logger_name="bite.test.unopenable",
            )
