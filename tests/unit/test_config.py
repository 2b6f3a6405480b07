"""Unit tests for Speak2TextConfig."""

from pathlib import Path

import pytest

from speak2text.config import Speak2TextConfig, DEFAULT_CONFIG


def write_config(directory: str, text: str) -> str:
    path = Path(directory) / "speak2text.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


@pytest.mark.unit
class TestSpeak2TextConfig:

    def test_defaults_without_file(self):
        config = Speak2TextConfig()

        assert config.get('server.base_url') == "http://localhost:5000"
        assert config.get('capture.default_mode') == "streaming"
        assert config.get('recording.min_bytes') == 1000
        assert config.get('recording.max_bytes') == 26214400
        assert config.get('recording.settle_delay_ms') == 100
        assert config.get('google_cloud.credentials_path') is None

    def test_defaults_are_not_shared(self):
        config = Speak2TextConfig()
        config.set('server.base_url', "http://example.test")

        assert DEFAULT_CONFIG['server']['base_url'] == "http://localhost:5000"

    def test_file_overrides_are_merged(self, temp_data_dir):
        path = write_config(temp_data_dir, "server:\n  base_url: http://remote:8080\n")

        config = Speak2TextConfig(path)

        assert config.get('server.base_url') == "http://remote:8080"
        assert config.get('server.timeout_seconds') == 30

    def test_empty_file_uses_defaults(self, temp_data_dir):
        config = Speak2TextConfig(write_config(temp_data_dir, ""))

        assert config.get('streaming.language') == "en-US"

    def test_missing_file(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            Speak2TextConfig(str(Path(temp_data_dir) / "nope.yaml"))

    def test_invalid_yaml(self, temp_data_dir):
        path = write_config(temp_data_dir, "server: [unclosed\n")

        with pytest.raises(ValueError):
            Speak2TextConfig(path)

    def test_non_mapping_yaml(self, temp_data_dir):
        path = write_config(temp_data_dir, "- just\n- a list\n")

        with pytest.raises(ValueError):
            Speak2TextConfig(path)

    def test_relative_paths_resolved(self, temp_data_dir):
        path = write_config(temp_data_dir, (
            "google_cloud:\n  credentials_path: creds/google.json\n"
            "logging:\n  file_path: logs/app.log\n"
        ))

        config = Speak2TextConfig(path)

        assert config.get('google_cloud.credentials_path') == str(Path(temp_data_dir) / "creds/google.json")
        assert config.get('logging.file_path') == str(Path(temp_data_dir) / "logs/app.log")

    def test_get_missing_key_returns_default(self):
        config = Speak2TextConfig()

        assert config.get('audio.nonexistent', 42) == 42
        assert config.get('server.base_url.deeper') is None

    def test_set_creates_nested_keys(self):
        config = Speak2TextConfig()

        config.set('extra.nested.value', 7)

        assert config.get('extra.nested.value') == 7

    def test_google_credentials_not_configured(self):
        assert Speak2TextConfig().get_google_credentials_path() is None

    def test_google_credentials_missing_file(self, temp_data_dir):
        path = write_config(temp_data_dir, "google_cloud:\n  credentials_path: missing.json\n")
        config = Speak2TextConfig(path)

        with pytest.raises(FileNotFoundError):
            config.get_google_credentials_path()

    def test_google_credentials_found(self, temp_data_dir):
        (Path(temp_data_dir) / "google.json").write_text("{}", encoding="utf-8")
        path = write_config(temp_data_dir, "google_cloud:\n  credentials_path: google.json\n")

        creds = Speak2TextConfig(path).get_google_credentials_path()

        assert Path(creds).is_absolute()
        assert Path(creds).name == "google.json"
