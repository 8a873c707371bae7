"""Application settings, read from a TOML file and environment variables."""

import os
import pathlib
import tomllib
from typing import Any, Optional


CONFIG_FILE_NAME = "churchcheckin.toml"
DEFAULT_API_URL = "https://soapboxsuperapp.com/api"

ENV_API_URL = "CHURCHCHECKIN_API_URL"
ENV_API_TOKEN = "CHURCHCHECKIN_API_TOKEN"
ENV_CHURCH_ID = "CHURCHCHECKIN_CHURCH_ID"

DEFAULT_CONFIG_TEXT = """\
# Church check-in station settings.

[api]
# Base URL of the church management REST API.
base_url = "https://soapboxsuperapp.com/api"
# Church that this station checks people into. Required.
church_id = ""
# Access token. Leave empty and set CHURCHCHECKIN_API_TOKEN instead if the
#   file is shared between stations.
token = ""
# Seconds to wait for an API response.
timeout = 10.0

[polling]
# Seconds between refreshes. Other stations' check-ins show up within one
#   interval.
services = 30
stats = 30
feed = 10

[checkin]
# Maximum number of members returned by a search.
search_limit = 10
# Number of entries shown in the recent check-ins feed.
recent_limit = 20
# Expected attendance per service, used for the progress display.
expected_attendance = 100
"""


class ConfigError(Exception):
    """Configuration file is missing or invalid."""


class Settings:
    """Check-in station settings."""

    config_path: Optional[pathlib.Path]
    """TOML file that settings were loaded from, None if using defaults."""
    api_base_url: str
    """Base URL for REST API calls."""
    api_token: Optional[str]
    """Bearer token sent with each API request."""
    church_id: Optional[str]
    """Church whose services are checked into."""
    request_timeout: float
    """Seconds before an API request is abandoned."""
    services_poll_seconds: float
    """Interval between refreshes of today's services."""
    stats_poll_seconds: float
    """Interval between refreshes of check-in statistics."""
    feed_poll_seconds: float
    """Interval between refreshes of the selected service's check-in feeds."""
    search_limit: int
    """Maximum number of members returned by a member search."""
    recent_limit: int
    """Maximum number of entries in the recent check-ins feed."""
    expected_attendance: int
    """Expected attendance per service."""

    def __init__(self, config_path: Optional[pathlib.Path] = None) -> None:
        """Load settings from config_path, or the default file if it exists."""
        self._set_defaults()
        if config_path is None:
            default_path = pathlib.Path.cwd() / CONFIG_FILE_NAME
            if default_path.exists():
                config_path = default_path
        self.config_path = config_path
        self.apply_environment()

    def _set_defaults(self) -> None:
        self.api_base_url = DEFAULT_API_URL
        self.api_token = None
        self.church_id = None
        self.request_timeout = 10.0
        self.services_poll_seconds = 30
        self.stats_poll_seconds = 30
        self.feed_poll_seconds = 10
        self.search_limit = 10
        self.recent_limit = 20
        self.expected_attendance = 100

    @property
    def config_path(self) -> Optional[pathlib.Path]:
        """Path to the TOML settings file."""
        return self._config_path

    @config_path.setter
    def config_path(self, path: Optional[pathlib.Path]) -> None:
        """Load settings whenever a new settings file is selected."""
        self._config_path = path
        if path is not None:
            self.load(path)
            self.apply_environment()

    def load(self, path: pathlib.Path) -> None:
        """Read settings from a TOML file."""
        try:
            with open(path, "rb") as tfile:
                data = tomllib.load(tfile)
        except (OSError, tomllib.TOMLDecodeError) as err:
            raise ConfigError(f"Unable to read settings file {path}: {err}") from err
        try:
            self._apply(data)
        except (TypeError, ValueError) as err:
            raise ConfigError(f"Invalid value in settings file {path}: {err}") from err

    def _apply(self, data: dict[str, Any]) -> None:
        """Copy values from parsed TOML data."""
        api = data.get("api", {})
        polling = data.get("polling", {})
        checkin = data.get("checkin", {})
        self.api_base_url = str(api.get("base_url", self.api_base_url)).rstrip("/")
        self.api_token = api.get("token") or self.api_token
        self.church_id = api.get("church_id") or self.church_id
        self.request_timeout = float(api.get("timeout", self.request_timeout))
        self.services_poll_seconds = float(
            polling.get("services", self.services_poll_seconds)
        )
        self.stats_poll_seconds = float(polling.get("stats", self.stats_poll_seconds))
        self.feed_poll_seconds = float(polling.get("feed", self.feed_poll_seconds))
        self.search_limit = int(checkin.get("search_limit", self.search_limit))
        self.recent_limit = int(checkin.get("recent_limit", self.recent_limit))
        self.expected_attendance = int(
            checkin.get("expected_attendance", self.expected_attendance)
        )
        if min(
            self.services_poll_seconds, self.stats_poll_seconds, self.feed_poll_seconds
        ) <= 0:
            raise ValueError("Polling intervals must be greater than 0.")

    def apply_environment(self) -> None:
        """Environment variables take precedence over the settings file."""
        if os.environ.get(ENV_API_URL):
            self.api_base_url = os.environ[ENV_API_URL].rstrip("/")
        if os.environ.get(ENV_API_TOKEN):
            self.api_token = os.environ[ENV_API_TOKEN]
        if os.environ.get(ENV_CHURCH_ID):
            self.church_id = os.environ[ENV_CHURCH_ID]

    @staticmethod
    def create_new_config_file(path: pathlib.Path) -> None:
        """Write a settings file with default values."""
        if path.exists():
            raise ConfigError(f"Cannot create settings file {path}, file exists.")
        path.write_text(DEFAULT_CONFIG_TEXT)


settings = Settings()
