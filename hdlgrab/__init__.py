"""Decode HDL-32 lidar packets from pcap captures or UDP into point clouds."""

__version__ = "0.1.0"
__all__ = ["packet", "pcap", "grabber", "view"]