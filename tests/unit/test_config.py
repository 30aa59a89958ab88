"""Unit tests for DashNotesConfig."""

import os
import pytest
from pathlib import Path

from dashnotes.config import DashNotesConfig


def write_config(directory, text):
    path = Path(directory) / "dashnotes.yaml"
    path.write_text(text, encoding='utf-8')
    return str(path)


@pytest.mark.unit
class TestDashNotesConfig:

    def test_defaults_without_file(self, temp_data_dir, monkeypatch):
        monkeypatch.chdir(temp_data_dir)

        config = DashNotesConfig()

        assert config.config_file is None
        assert config.get('speech.language') == "fr-FR"
        assert config.get('storage.write_failure_policy') == "warn"
        assert config.get_credentials_path() is None

    def test_missing_explicit_file(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            DashNotesConfig(os.path.join(temp_data_dir, "nope.yaml"))

    def test_file_overrides_defaults(self, temp_data_dir):
        path = write_config(temp_data_dir, "speech:\n  language: en-US\n")

        config = DashNotesConfig(path)

        assert config.get('speech.language') == "en-US"
        assert config.get('speech.interim_results') is True
        assert config.get('audio.chunk_size') == 1024

    def test_relative_paths_resolved(self, temp_data_dir):
        path = write_config(temp_data_dir, "speech:\n  credentials_path: creds.json\nstorage:\n  data_directory: notes\n")

        config = DashNotesConfig(path)

        assert config.get('speech.credentials_path') == str(Path(temp_data_dir) / "creds.json")
        assert config.get_data_directory() == str((Path(temp_data_dir) / "notes").absolute())

    def test_empty_file(self, temp_data_dir):
        path = write_config(temp_data_dir, "")

        with pytest.raises(ValueError):
            DashNotesConfig(path)

    def test_invalid_yaml(self, temp_data_dir):
        path = write_config(temp_data_dir, "speech: [unclosed\n")

        with pytest.raises(ValueError):
            DashNotesConfig(path)

    def test_unknown_write_failure_policy(self, temp_data_dir):
        path = write_config(temp_data_dir, "storage:\n  write_failure_policy: retry\n")

        with pytest.raises(ValueError, match="write_failure_policy"):
            DashNotesConfig(path)

    def test_get_and_set(self, temp_data_dir, monkeypatch):
        monkeypatch.chdir(temp_data_dir)
        config = DashNotesConfig()

        config.set('audio.input_device_index', 3)
        config.set('new.section.key', "value")

        assert config.get('audio.input_device_index') == 3
        assert config.get('new.section.key') == "value"
        assert config.get('missing.key', "fallback") == "fallback"
