"""Per-user configuration directory and database location."""
import os
import sys
from pathlib import Path
from typing import Optional

from trana.errors import ConfigError

APP_NAME = "trana"
DB_FILENAME = "trana.db"
DB_ENV_VAR = "TRANA_DB"


def base_dir(platform: Optional[str] = None) -> Path:
    """Return the platform's per-user configuration root."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        appdata = os.environ.get("APPDATA")
        if not appdata:
            raise ConfigError("config: %APPDATA% must be defined")
        return Path(appdata)
    home = os.environ.get("HOME")
    if platform == "darwin":
        if not home:
            raise ConfigError("config: $HOME must be defined")
        return Path(home) / "Library" / "Application Support"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    if not home:
        raise ConfigError("config: $XDG_CONFIG_HOME or $HOME must be defined")
    return Path(home) / ".config"


def config_dir(name: str = APP_NAME, platform: Optional[str] = None) -> Path:
    """Return ``<config root>/<name>``, creating it if needed."""
    path = base_dir(platform) / name
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_db_path(directory: Optional[str] = None) -> str:
    if directory:
        return str(Path(directory) / DB_FILENAME)
    override = os.environ.get(DB_ENV_VAR)
    if override:
        return override
    return str(config_dir() / DB_FILENAME)
