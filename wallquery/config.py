"""
wallquery Configuration Management

This file handles generating and loading the configuration file. WallqueryConfig is created
once at startup by init() and then passed explicitly to every component that needs it. There
is no module level config instance, so tests (or an application serving several users) can
hold as many independent configurations as they like.

Besides a few directory and timeout settings, the configuration holds a flat mapping of string
preferences. Provider API keys and the serialized saved query collections live there, read and
written through get_string / set_string. Raise a WallqueryConfigError for any issues that arise
in processing or retrieving these configuration variables.

The configuration file is "config.json", saved at ~/.config/wallquery/config.json unless the
WALLQUERY_CONFIG_DIR environment variable points somewhere else.
"""

import json
import os
import threading
from dataclasses import dataclass
from dataclasses import field
from dataclasses import fields
from pathlib import Path, PurePath
from typing import Optional

from wallquery.errors import WallqueryError


CONFIG_FILE_NAME = "config.json"


class WallqueryConfigError(WallqueryError):
    """Raise when an issue occurs with handling wallquery configuration."""

    pass


class PathEncoder(json.JSONEncoder):
    """
    custom encoder adds support for serializing pathlib objects as strings
    """

    def default(self, o):
        if isinstance(o, PurePath):
            return str(o)

        else:
            return json.JSONEncoder.default(self, o)


@dataclass
class WallqueryConfig:
    """
    Dataclass to represent configuration variables for wallquery.

    A WallqueryConfig is instantiated by supplying keyword arguments from a deserialized json
    object. Application code references the identifiers of the dataclass instead of brittle
    dictionary keys, except for the free-form preferences which are reached through
    get_string and set_string. The preferences mapping is kept flat: string keys to string
    values.
    """

    WALLQUERY_CONFIG_DIR: Path = Path("~/.config/wallquery").expanduser().resolve()
    REQUEST_TIMEOUT: float = 30.0
    preferences: dict = field(default_factory=dict)

    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        """
        Handle the case where a new WallqueryConfig is created from JSON, which cannot
        deserialize a str into a Path.
        """

        self.WALLQUERY_CONFIG_DIR = Path(self.WALLQUERY_CONFIG_DIR).expanduser()
        self.REQUEST_TIMEOUT = float(self.REQUEST_TIMEOUT)

        if not isinstance(self.preferences, dict):
            raise WallqueryConfigError(
                f"preferences must be a mapping, got {type(self.preferences).__name__}"
            )

        self.preferences = {str(k): str(v) for k, v in self.preferences.items()}

    @property
    def config_file(self) -> Path:
        return self.WALLQUERY_CONFIG_DIR / CONFIG_FILE_NAME

    def get_string(self, key: str, fallback: str = "") -> str:
        """Return the preference stored under key, or fallback if there is none."""

        with self._lock:
            return self.preferences.get(key, fallback)

    def set_string(self, key: str, value: str) -> None:
        """
        Store a preference and write the whole configuration to file. The in-memory value is
        updated even when writing fails, in which case WallqueryConfigError is raised.
        """

        with self._lock:
            self.preferences[key] = str(value)
            self._write()

    def generate_config_json(self) -> Path:
        """
        Write the WallqueryConfig to file, serializing to JSON. Returns filepath of written
        config.json file which *should* be located at WALLQUERY_CONFIG_DIR.

        Warning: will overwrite any existing config file for wallquery, by design.
        """

        with self._lock:
            return self._write()

    def _write(self) -> Path:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.init}

        try:
            to_json = json.dumps(data, sort_keys=True, indent=4, cls=PathEncoder)

        except TypeError as error:
            raise WallqueryConfigError(
                f"There was an error trying to serialize config data to JSON: {error}"
            )

        try:
            self.WALLQUERY_CONFIG_DIR.mkdir(parents=True, exist_ok=True)

            dest_file = self.config_file
            with open(dest_file, "w") as file:
                file.write(to_json)

        except OSError as error:
            raise WallqueryConfigError(
                f"There was an error saving the configuration file: {error}."
            )

        return dest_file


def config_dir_from_env() -> Path:
    """Return the configuration directory, honouring the WALLQUERY_CONFIG_DIR environment variable."""

    try:
        return Path(os.environ["WALLQUERY_CONFIG_DIR"]).expanduser()

    except KeyError:
        return Path("~/.config/wallquery").expanduser()


def load_config(config_dir: Optional[Path] = None) -> WallqueryConfig:
    """
    Load config.json from config_dir (default: see config_dir_from_env) and instantiate
    variables as a WallqueryConfig dataclass. Raise WallqueryConfigError if a config file
    can't be found or read at that location.
    """

    config_dir = Path(config_dir) if config_dir is not None else config_dir_from_env()
    config_src = config_dir / CONFIG_FILE_NAME

    try:
        with config_src.open("r") as file:
            from_json = json.loads(file.read())

        if not isinstance(from_json, dict):
            raise WallqueryConfigError(
                f"There was an issue reading the config: expected an object in {config_src}"
            )

        from_json["WALLQUERY_CONFIG_DIR"] = config_dir
        config = WallqueryConfig(**from_json)

    except json.JSONDecodeError as error:
        raise WallqueryConfigError(f"There was an issue reading the config: {error}")

    except FileNotFoundError as error:
        raise WallqueryConfigError(f"There was an issue opening the config: {error}")

    except TypeError as error:
        raise WallqueryConfigError(f"Unknown setting in the config: {error}")

    return config


def init(config_dir: Optional[Path] = None) -> WallqueryConfig:
    """
    Load the configuration, generating a default config file when none can be found.
    A config file that exists but cannot be parsed is reported rather than overwritten.
    """

    config_dir = Path(config_dir) if config_dir is not None else config_dir_from_env()

    if (config_dir / CONFIG_FILE_NAME).exists():
        return load_config(config_dir)

    config = WallqueryConfig(WALLQUERY_CONFIG_DIR=config_dir)
    config.generate_config_json()

    return config
