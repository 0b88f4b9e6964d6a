
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
from argparse import Namespace
from unittest.mock import patch

import pytest

from trsync.config import (
    ConfigServerStore,
    TrackSetAction,
    _load_debug_section,
    _load_server_section,
    _load_sync_section,
    create_default_config,
    get_available_profiles,
    get_config_path,
    load_config,
    merge_config_with_args,
    server_from_config,
)
from trsync.torrent.models import ClientError


def parse(config_text: str) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None)
    parser.read_string(config_text)
    return parser


@pytest.fixture
def config_dir(tmp_path):
    with patch("trsync.config.get_config_dir", return_value=tmp_path):
        yield tmp_path


class TestLoadServerSection:
    """Test cases for _load_server_section function."""

    def test_empty_config(self):
        """Test handling of empty config without [server] section."""
        config = {}

        _load_server_section(parse(""), config)

        assert config == {}

    def test_empty_section(self):
        """Test handling of [server] section with all empty values."""
        config_text = """
[server]
name =
host =
port =
https =
username =
password =
"""
        config = {}

        _load_server_section(parse(config_text), config)

        assert config == {}

    def test_filled_values(self):
        """Test handling of [server] section with all values filled."""
        config_text = """
[server]
name = nas
host = 192.168.1.100
port = 9092
path = /rpc
https = yes
username = admin
password = se%cret
"""
        config = {}

        _load_server_section(parse(config_text), config)

        assert config == {
            "name": "nas",
            "host": "192.168.1.100",
            "port": 9092,
            "path": "/rpc",
            "https": True,
            "username": "admin",
            "password": "se%cret",
        }

    def test_invalid_port(self, capsys):
        """Test that an invalid port is skipped with a warning."""
        config = {}

        _load_server_section(parse("[server]\nport = abc\n"), config)

        assert config == {}
        assert "Invalid port" in capsys.readouterr().err


class TestLoadSyncSection:
    """Test cases for _load_sync_section function."""

    def test_interval(self):
        """Test that the refresh interval is parsed as float."""
        config = {}

        _load_sync_section(parse("[sync]\nrefresh_interval = 2.5\n"), config)

        assert config == {"refresh_interval": 2.5}

    def test_invalid_interval(self):
        """Test that an invalid refresh interval is skipped."""
        config = {}

        _load_sync_section(parse("[sync]\nrefresh_interval = soon\n"), config)

        assert config == {}


class TestLoadDebugSection:
    """Test cases for _load_debug_section function."""

    def test_log_level(self):
        """Test that the log level is read."""
        config = {}

        _load_debug_section(parse("[debug]\nlog_level = debug\n"), config)

        assert config == {"log_level": "debug"}


class TestServerFromConfig:
    """Test cases for server_from_config function."""

    def test_defaults(self):
        """Test that an empty config points at a local daemon."""
        server = server_from_config({})

        assert server.name == "localhost"
        assert server.url == "http://localhost:9091/transmission/rpc"
        assert server.username is None

    def test_all_values(self):
        """Test that every config key is used."""
        server = server_from_config(
            {
                "host": "nas.local",
                "port": 443,
                "https": True,
                "path": "/tr/rpc",
                "username": "me",
                "password": "pw",
            },
            name="home",
        )

        assert server.name == "home"
        assert server.url == "https://nas.local:443/tr/rpc"
        assert (server.username, server.password) == ("me", "pw")

    def test_configured_name_wins(self):
        """Test that the name option takes priority over the profile."""
        server = server_from_config({"name": "Seedbox"}, name="seedbox")

        assert server.name == "Seedbox"


class TestProfiles:
    """Test cases for config files and profiles."""

    def test_config_path(self, config_dir):
        """Test base and profile file names."""
        assert get_config_path() == config_dir / "trsync.conf"
        assert get_config_path("work") == config_dir / "trsync-work.conf"

    def test_available_profiles(self, config_dir):
        """Test that profiles are listed by name, sorted."""
        (config_dir / "trsync.conf").write_text("")
        (config_dir / "trsync-work.conf").write_text("")
        (config_dir / "trsync-home.conf").write_text("")
        (config_dir / "other.conf").write_text("")

        assert get_available_profiles() == ["home", "work"]

    def test_missing_dir(self, tmp_path):
        """Test that a missing config directory means no profiles."""
        with patch(
            "trsync.config.get_config_dir", return_value=tmp_path / "none"
        ):
            assert get_available_profiles() == []

    def test_profile_overlays_base(self, config_dir):
        """Test that profile values override the base config."""
        (config_dir / "trsync.conf").write_text(
            "[server]\nhost = base\nusername = me\n"
        )
        (config_dir / "trsync-work.conf").write_text(
            "[server]\nhost = work\n"
        )

        assert load_config("work") == {"host": "work", "username": "me"}

    def test_missing_profile(self, config_dir):
        """Test that an unknown profile is an error."""
        with pytest.raises(ClientError):
            load_config("nope")

    def test_server_store(self, config_dir):
        """Test that saved servers come from profiles."""
        (config_dir / "trsync-seedbox.conf").write_text(
            "[server]\nhost = seed.example.org\n"
        )
        servers = ConfigServerStore()

        assert servers.names() == ["seedbox"]
        server = servers.load("seedbox")
        assert server.name == "seedbox"
        assert server.host == "seed.example.org"

    def test_create_default_config(self, tmp_path):
        """Test that the default config parses back to nothing."""
        path = tmp_path / "sub" / "trsync.conf"

        create_default_config(path)

        parser = configparser.ConfigParser(interpolation=None)
        parser.read(path)
        config = {}
        _load_server_section(parser, config)
        _load_sync_section(parser, config)
        _load_debug_section(parser, config)
        assert config == {}


class TestMergeConfigWithArgs:
    """Test cases for merge_config_with_args function."""

    def test_cli_wins(self):
        """Test that explicitly set arguments are kept."""
        args = Namespace(host="cli-host", port=9091)
        setattr(args, f"host{TrackSetAction.SET_POSTFIX}", True)

        merge_config_with_args({"host": "file-host", "port": 1234}, args)

        assert args.host == "cli-host"
        assert args.port == 1234
