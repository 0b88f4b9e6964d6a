
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

from trsync.util.print import print_eta, print_ratio, print_size, print_speed


class TestPrintSize:
    """Test cases for print_size function."""

    def test_bytes(self):
        """Test formatting of byte values."""
        assert print_size(0) == "0 B"
        assert print_size(999) == "999 B"

    def test_larger_units(self):
        """Test formatting of kilobyte and larger values."""
        assert print_size(1500) == "1.5 kB"
        assert print_size(1000000) == "1 MB"
        assert print_size(1500000000) == "1.5 GB"

    def test_custom_size_bytes(self):
        """Test formatting with binary unit size."""
        assert print_size(1048576, size_bytes=1024) == "1 MB"


class TestPrintSpeed:
    """Test cases for print_speed function."""

    def test_bytes_per_second(self):
        """Test formatting of small rates."""
        assert print_speed(0) == "0 B/s"
        assert print_speed(512) == "512 B/s"

    def test_kilobytes_rounded(self):
        """Test that kilobyte rates are rounded to whole numbers."""
        assert print_speed(1000) == "1 KB/s"
        assert print_speed(1400) == "1 KB/s"

    def test_megabytes(self):
        """Test that megabyte rates keep two decimals."""
        assert print_speed(1500000) == "1.5 MB/s"
        assert print_speed(2345678) == "2.35 MB/s"


class TestPrintRatio:
    """Test cases for print_ratio function."""

    def test_normal_ratios(self):
        """Test formatting of normal ratio values."""
        assert print_ratio(0.0) == "0.00"
        assert print_ratio(1.234) == "1.23"

    def test_special_values(self):
        """Test Transmission's sentinel ratio values."""
        assert print_ratio(-1) == "-"
        assert print_ratio(-2) == "∞"
        assert print_ratio(float("inf")) == "∞"


class TestPrintEta:
    """Test cases for print_eta function."""

    def test_unknown(self):
        """Test that negative values mean unknown."""
        assert print_eta(-1) == "-"
        assert print_eta(-2) == "-"

    def test_zero(self):
        """Test formatting of zero seconds."""
        assert print_eta(0) == "0s"

    def test_two_largest_units(self):
        """Test that at most two units are shown."""
        assert print_eta(45) == "45s"
        assert print_eta(3900) == "1h 5m"
        assert print_eta(90061) == "1d 1h"
        assert print_eta(3605) == "1h 5s"
