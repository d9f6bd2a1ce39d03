import configparser

import pytest

from icerip.exceptions import ConfigurationError
from icerip.models.config import DEFAULT_MAX_BUFFER_BYTES, RecorderConfig
from icerip.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "icerip" / "config.ini"


def test_missing_file_yields_defaults(config_file):
    config = ConfigManager(config_file).load_config()

    assert config.max_reconnect_attempts == 5
    assert config.filter_text == ""
    assert config.max_buffer_bytes == DEFAULT_MAX_BUFFER_BYTES
    assert config.config_path == str(config_file.parent)
    assert not config_file.exists()


def test_save_and_load_round_trip(config_file, tmp_path):
    manager = ConfigManager(config_file)
    original = RecorderConfig(
        stream_url="http://radio.example.com/live",
        save_path=str(tmp_path),
        filter_text="Daft Punk\nBoards of Canada",
        max_reconnect_attempts=3,
        tag_files=True,
    )

    manager.save_config(original)
    loaded = ConfigManager(config_file).load_config()

    assert loaded.stream_url == original.stream_url
    assert loaded.save_path == original.save_path
    assert loaded.filter_text.splitlines() == ["Daft Punk", "Boards of Canada"]
    assert loaded.max_reconnect_attempts == 3
    assert loaded.tag_files is True


def test_cli_options_override_file(config_file):
    manager = ConfigManager(config_file)
    manager.save_settings({"stream_url": "http://a.example.com/", "filter_text": "old"})

    config = manager.load_config({"filter_text": "new", "max_reconnect_attempts": 0})

    assert config.stream_url == "http://a.example.com/"
    assert config.filter_text == "new"
    assert config.max_reconnect_attempts == 0


def test_save_settings_fills_missing_keys_with_defaults(config_file):
    ConfigManager(config_file).save_settings({"stream_url": "http://a.example.com/"})

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(config_file, encoding="utf-8")
    section = parser["DEFAULT"]

    assert set(section) == RecorderConfig.get_ini_keys()
    assert section["stream_url"] == "http://a.example.com/"
    assert section["tag_files"] == "false"
    assert section["file_extension"] == "mp3"


def test_migration_adds_missing_keys(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(
        "[DEFAULT]\nstream_url = http://a.example.com/\n", encoding="utf-8"
    )

    config = ConfigManager(config_file).load_config()

    assert config.stream_url == "http://a.example.com/"
    contents = config_file.read_text(encoding="utf-8")
    assert "max_reconnect_attempts = 5" in contents
    assert "max_buffer_bytes" in contents


@pytest.mark.parametrize(
    "line",
    [
        "max_reconnect_attempts = lots",
        "max_reconnect_attempts = -1",
        "tag_files = maybe",
        "file_extension = m p 3",
        "max_buffer_bytes = 10",
    ],
)
def test_invalid_values_raise_configuration_error(config_file, line):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(f"[DEFAULT]\n{line}\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        ConfigManager(config_file).load_config()


def test_unparseable_file_raises_configuration_error(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("this is not an ini file\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        ConfigManager(config_file).load_config()


def test_extension_is_normalized():
    assert RecorderConfig(file_extension=" .AAC ").file_extension == "aac"
