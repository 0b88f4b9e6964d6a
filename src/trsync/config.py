#!/usr/bin/env python3

# trsync - Remote control client for the Transmission BitTorrent daemon
# Copyright (C) 2025  Anton Larionov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

import configparser
import sys
from argparse import Action, Namespace
from pathlib import Path

from platformdirs import user_config_dir

from .torrent.models import ClientError, Server

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9091
DEFAULT_PATH = "/transmission/rpc"


class TrackSetAction(Action):
    SET_POSTFIX = "_was_set"

    def __call__(self, parser, namespace, values, option_string=None):
        setattr(namespace, self.dest, values)
        setattr(namespace, f"{self.dest}{self.SET_POSTFIX}", True)


class TrackSetTrueAction(TrackSetAction):
    """Flag counterpart of ``store_true`` that is tracked the same way."""

    def __init__(self, option_strings, dest, default=False, help=None):
        super().__init__(
            option_strings, dest, nargs=0, default=default, help=help
        )

    def __call__(self, parser, namespace, values, option_string=None):
        super().__call__(parser, namespace, True, option_string)


def get_config_dir() -> Path:
    """
    Get the configuration directory path using platformdirs.

    Returns the platform-appropriate user config directory for trsync.
    """
    return Path(user_config_dir("trsync", appauthor=False))


def get_config_path(profile: str | None = None) -> Path:
    """
    Get the configuration file path.

    Args:
        profile: Optional profile name. If provided, returns path to
                 trsync-PROFILE.conf, otherwise returns trsync.conf

    Returns:
        Path to the configuration file
    """
    config_dir = get_config_dir()
    if profile:
        return config_dir / f"trsync-{profile}.conf"
    else:
        return config_dir / "trsync.conf"


def get_available_profiles() -> list[str]:
    """
    Get list of available configuration profiles.

    Returns:
        List of profile names (without trsync- prefix and .conf suffix)
    """
    config_dir = get_config_dir()
    if not config_dir.exists():
        return []

    return sorted(
        f.stem.removeprefix("trsync-")
        for f in config_dir.glob("trsync-*.conf")
    )


def _get_string_option(
    parser: configparser.ConfigParser, section: str, option: str
) -> str | None:
    """Get string option, returning None if empty or missing."""
    if parser.has_option(section, option):
        val = parser.get(section, option)
        return val.strip() if val and val.strip() else None
    return None


def _get_int_option(
    parser: configparser.ConfigParser, section: str, option: str
) -> int | None:
    """Get int option, returning None if empty, missing, or invalid."""
    val = _get_string_option(parser, section, option)
    if val is not None:
        try:
            return int(val)
        except ValueError as e:
            print(
                f"Warning: Invalid {option} value in config: {e}",
                file=sys.stderr,
            )
    return None


def _get_float_option(
    parser: configparser.ConfigParser, section: str, option: str
) -> float | None:
    val = _get_string_option(parser, section, option)
    if val is not None:
        try:
            return float(val)
        except ValueError as e:
            print(
                f"Warning: Invalid {option} value in config: {e}",
                file=sys.stderr,
            )
    return None


def _get_bool_option(
    parser: configparser.ConfigParser, section: str, option: str
) -> bool | None:
    """Get bool option, returning None if missing or invalid."""
    if _get_string_option(parser, section, option) is None:
        return None
    try:
        return parser.getboolean(section, option)
    except ValueError as e:
        print(
            f"Warning: Invalid {option} value in config: {e}",
            file=sys.stderr,
        )
    return None


def _load_server_section(
    parser: configparser.ConfigParser, config: dict
) -> None:
    """Load [server] section options into config dict."""
    if not parser.has_section("server"):
        return

    for key in ("name", "host", "path", "username", "password"):
        val = _get_string_option(parser, "server", key)
        if val:
            config[key] = val
    val = _get_int_option(parser, "server", "port")
    if val is not None:
        config["port"] = val
    val = _get_bool_option(parser, "server", "https")
    if val is not None:
        config["https"] = val


def _load_sync_section(
    parser: configparser.ConfigParser, config: dict
) -> None:
    """Load [sync] section options into config dict."""
    if not parser.has_section("sync"):
        return

    val = _get_float_option(parser, "sync", "refresh_interval")
    if val is not None:
        config["refresh_interval"] = val


def _load_debug_section(
    parser: configparser.ConfigParser, config: dict
) -> None:
    """Load [debug] section options into config dict."""
    if not parser.has_section("debug"):
        return

    val = _get_string_option(parser, "debug", "log_level")
    if val:
        config["log_level"] = val


def _load_config_file(config_path: Path, config: dict) -> None:
    """
    Load configuration from a single INI file and merge into config dict.

    Args:
        config_path: Path to the config file
        config: Dictionary to merge config values into
    """
    if not config_path.exists():
        return

    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(config_path)
    except configparser.Error as e:
        print(
            f"Warning: Failed to parse config file {config_path}: {e}",
            file=sys.stderr,
        )
        print("Continuing with default values...", file=sys.stderr)
        return

    _load_server_section(parser, config)
    _load_sync_section(parser, config)
    _load_debug_section(parser, config)


def load_config(profile: str | None = None) -> dict:
    """
    Load configuration from INI file(s).

    If profile is specified, loads base config (trsync.conf) first, then
    overlays profile config (trsync-PROFILE.conf) on top.

    Args:
        profile: Optional profile name

    Returns:
        Dictionary with config values. Returns empty dict if files
        don't exist or on parsing errors.

    Raises:
        ClientError: If the profile config file does not exist
    """
    config = {}

    _load_config_file(get_config_path(), config)

    if profile:
        profile_config_path = get_config_path(profile)
        if not profile_config_path.exists():
            raise ClientError(
                f"Profile config not found: {profile_config_path}"
            )
        _load_config_file(profile_config_path, config)

    return config


def server_from_config(config: dict, name: str | None = None) -> Server:
    """Build connection settings from a loaded config dict."""
    host = config.get("host") or DEFAULT_HOST
    return Server(
        name=config.get("name") or name or host,
        host=host,
        port=config.get("port") or DEFAULT_PORT,
        scheme="https" if config.get("https") else "http",
        path=config.get("path") or DEFAULT_PATH,
        username=config.get("username"),
        password=config.get("password"),
    )


class ConfigServerStore:
    """Saved servers, one per config profile.

    The base config file describes the default server; every
    ``trsync-PROFILE.conf`` overlays it with another one.
    """

    def names(self) -> list[str]:
        return get_available_profiles()

    def load(self, profile: str | None = None) -> Server:
        """
        Raises:
            ClientError: If the profile does not exist
        """
        return server_from_config(load_config(profile), profile)


def create_default_config(path: Path) -> None:
    """
    Create a default configuration file with comments.

    Args:
        path: Path where the config file should be created

    Raises:
        ClientError: If the file can't be written
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    config_content = """\
# trsync Configuration File
# This file uses INI format. Empty values use defaults.

[server]
# Display name of this server (default: host)
name =

# Daemon connection settings (default: localhost:9091)
host =
port =

# RPC path (default: /transmission/rpc)
path =

# Connect over HTTPS: true or false (default: false)
https =

# Authentication (leave empty if not required)
username =
password =

[sync]
# Refresh interval in seconds, at least 1 (default: 5)
refresh_interval =

[debug]
# Log level: debug, info, warning, error, critical
log_level =

"""

    try:
        path.write_text(config_content)
    except OSError as e:
        raise ClientError(f"Failed to create config file {path}: {e}")


def merge_config_with_args(config: dict, args: Namespace) -> None:
    """
    Merge config file values with CLI arguments.

    CLI arguments take priority over config file values.
    Modifies args in place.

    Args:
        config: Dictionary of config values from load_config()
        args: Parsed command-line arguments from argparse
    """

    for key, value in config.items():
        if not hasattr(args, f"{key}{TrackSetAction.SET_POSTFIX}"):
            setattr(args, key, value)
