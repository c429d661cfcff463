"""Tests for the disk usage collector."""

from collections import namedtuple
from unittest.mock import patch

import pytest

from hosteye.plugins.disk import DiskCollector, device_name

# Mock psutil types
MockPartition = namedtuple("sdiskpart", ["device", "mountpoint", "fstype", "opts"])
MockUsage = namedtuple("sdiskusage", ["total", "used", "free", "percent"])


class TestDeviceName:
    """Tests for device_name()."""

    def test_last_segment(self) -> None:
        """Test that the device path is reduced to its last segment."""
        assert device_name("/dev/sda1") == "sda1"
        assert device_name("/dev/mapper/vg-root") == "vg-root"

    def test_no_slash(self) -> None:
        """Test a device name without a path."""
        assert device_name("tmpfs") == "tmpfs"


class TestDiskCollector:
    """Tests for DiskCollector."""

    def test_defaults(self) -> None:
        """Test collector name and interval."""
        collector = DiskCollector()
        assert collector.name == "disk"
        assert collector.interval == 30.0
        assert not collector.all_partitions

    @patch("hosteye.plugins.disk.psutil.disk_usage")
    @patch("hosteye.plugins.disk.psutil.disk_partitions")
    def test_failed_partition_skipped(self, mock_partitions, mock_usage) -> None:
        """Test that a partition whose usage lookup fails is left out."""
        mock_partitions.return_value = [
            MockPartition("/dev/sda1", "/", "ext4", "rw"),
            MockPartition("/dev/sdb1", "/mnt/data", "ext4", "rw"),
        ]

        def usage(mountpoint: str) -> MockUsage:
            if mountpoint == "/mnt/data":
                raise OSError("device not ready")
            return MockUsage(total=100, used=40, free=60, percent=40.0)

        mock_usage.side_effect = usage

        fields = DiskCollector().sample()

        assert fields == {"sda1.total": 100, "sda1.used": 40, "sda1.free": 60}

    @patch("hosteye.plugins.disk.psutil.disk_usage")
    @patch("hosteye.plugins.disk.psutil.disk_partitions")
    def test_permission_denied_skipped(self, mock_partitions, mock_usage) -> None:
        """Test that permission errors on one partition are skipped too."""
        mock_partitions.return_value = [MockPartition("/dev/sdc1", "/secret", "ext4", "rw")]
        mock_usage.side_effect = PermissionError("denied")

        assert DiskCollector().sample() == {}

    @patch("hosteye.plugins.disk.psutil.disk_usage")
    @patch("hosteye.plugins.disk.psutil.disk_partitions")
    def test_multiple_partitions(self, mock_partitions, mock_usage) -> None:
        """Test that every accessible partition contributes three fields."""
        mock_partitions.return_value = [
            MockPartition("/dev/sda1", "/", "ext4", "rw"),
            MockPartition("/dev/nvme0n1p2", "/home", "xfs", "rw"),
        ]
        mock_usage.return_value = MockUsage(total=10, used=4, free=6, percent=40.0)

        fields = DiskCollector().sample()

        assert set(fields) == {
            "sda1.total",
            "sda1.used",
            "sda1.free",
            "nvme0n1p2.total",
            "nvme0n1p2.used",
            "nvme0n1p2.free",
        }

    @patch("hosteye.plugins.disk.psutil.disk_partitions")
    def test_all_partitions_flag(self, mock_partitions) -> None:
        """Test that all_partitions is passed to psutil."""
        mock_partitions.return_value = []
        DiskCollector(all_partitions=True).sample()
        mock_partitions.assert_called_once_with(all=True)

    @pytest.mark.asyncio
    async def test_listing_failure_fails_tick(self) -> None:
        """Test that failing to list partitions fails the whole collection."""
        with patch(
            "hosteye.plugins.disk.psutil.disk_partitions",
            side_effect=RuntimeError("mount table unreadable"),
        ):
            result = await DiskCollector().safe_collect()

        assert not result.success
