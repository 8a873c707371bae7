"""Test loading station settings."""

import pathlib

import pytest

from churchcheckin import config


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
    """Isolate tests from the developer's environment and settings file."""
    for var in (config.ENV_API_URL, config.ENV_API_TOKEN, config.ENV_CHURCH_ID):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults() -> None:
    # Act
    settings = config.Settings()
    # Assert
    assert settings.config_path is None
    assert settings.api_base_url == config.DEFAULT_API_URL
    assert settings.church_id is None
    assert settings.feed_poll_seconds == 10
    assert settings.recent_limit == 20
    assert settings.expected_attendance == 100


def test_default_file_round_trip(tmp_path: pathlib.Path) -> None:
    """A new settings file loads with default values."""
    # Arrange
    path = tmp_path / config.CONFIG_FILE_NAME
    config.Settings.create_new_config_file(path)
    # Act
    settings = config.Settings()
    # Assert
    assert settings.config_path is not None
    assert settings.config_path.resolve() == path.resolve()
    assert settings.api_base_url == config.DEFAULT_API_URL
    assert settings.church_id is None
    assert settings.api_token is None
    assert settings.services_poll_seconds == 30


def test_load_values(tmp_path: pathlib.Path) -> None:
    # Arrange
    path = tmp_path / "station.toml"
    path.write_text(
        "[api]\n"
        'base_url = "https://church.example.org/api/"\n'
        'church_id = "church-7"\n'
        "timeout = 5\n"
        "[polling]\n"
        "feed = 2.5\n"
        "[checkin]\n"
        "expected_attendance = 250\n"
    )
    # Act
    settings = config.Settings(path)
    # Assert
    assert settings.api_base_url == "https://church.example.org/api"
    assert settings.church_id == "church-7"
    assert settings.request_timeout == 5.0
    assert settings.feed_poll_seconds == 2.5
    assert settings.stats_poll_seconds == 30
    assert settings.expected_attendance == 250


def test_environment_overrides_file(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    # Arrange
    path = tmp_path / "station.toml"
    path.write_text('[api]\nchurch_id = "church-7"\ntoken = "file-token"\n')
    monkeypatch.setenv(config.ENV_CHURCH_ID, "church-9")
    monkeypatch.setenv(config.ENV_API_TOKEN, "env-token")
    # Act
    settings = config.Settings(path)
    # Assert
    assert settings.church_id == "church-9"
    assert settings.api_token == "env-token"


def test_invalid_file(tmp_path: pathlib.Path) -> None:
    # Arrange
    path = tmp_path / "broken.toml"
    path.write_text("[api\nchurch_id = ")
    # Act / Assert
    with pytest.raises(config.ConfigError):
        config.Settings(path)


def test_invalid_polling_interval(tmp_path: pathlib.Path) -> None:
    # Arrange
    path = tmp_path / "station.toml"
    path.write_text("[polling]\nfeed = 0\n")
    # Act / Assert
    with pytest.raises(config.ConfigError):
        config.Settings(path)


def test_create_existing_file(tmp_path: pathlib.Path) -> None:
    # Arrange
    path = tmp_path / "station.toml"
    path.write_text("")
    # Act / Assert
    with pytest.raises(config.ConfigError):
        config.Settings.create_new_config_file(path)


def test_environment_overrides_new_settings_file(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Selecting another settings file keeps environment overrides."""
    # Arrange
    monkeypatch.setenv(config.ENV_CHURCH_ID, "church-9")
    settings = config.Settings()
    path = tmp_path / "other.toml"
    path.write_text('[api]\nchurch_id = "church-7"\nbase_url = "https://other.example.org"\n')
    # Act
    settings.config_path = path
    # Assert
    assert settings.church_id == "church-9"
    assert settings.api_base_url == "https://other.example.org"
