"""Reading of classic pcap capture files and extraction of UDP payloads."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass
from os import PathLike

GLOBAL_HEADER_SIZE = 24
RECORD_HEADER_SIZE = 16
ETHERNET_HEADER_SIZE = 14
# Ethernet (14) + IPv4 without options (20) + UDP (8).
UDP_PAYLOAD_OFFSET = 42

ETHERTYPE_IPV4 = 0x0800
ETHERTYPE_IPV6 = 0x86DD
_VLAN_ETHERTYPES = (0x8100, 0x88A8)
IPPROTO_UDP = 17

# Magic number bytes -> (struct byte order, divisor turning the fraction into microseconds).
_MAGICS = {
    b"\xd4\xc3\xb2\xa1": ("<", 1),
    b"\xa1\xb2\xc3\xd4": (">", 1),
    b"\x4d\x3c\xb2\xa1": ("<", 1000),
    b"\xa1\xb2\x3c\x4d": (">", 1000),
}


class PcapError(ValueError):
    """Raised when a capture file is malformed or truncated."""


@dataclass(frozen=True)
class PcapRecord:
    """One captured frame with its capture time."""

    ts_sec: int
    ts_usec: int
    orig_len: int
    data: bytes

    @property
    def timestamp(self) -> float:
        """Capture time in seconds."""
        return self.ts_sec + self.ts_usec / 1_000_000


def read_pcap(path: str | PathLike[str]) -> Iterator[PcapRecord]:
    """Yield every record of a pcap file in file order."""
    with open(path, "rb") as stream:
        header = stream.read(GLOBAL_HEADER_SIZE)
        if len(header) < GLOBAL_HEADER_SIZE:
            raise PcapError("truncated pcap global header")
        try:
            byte_order, divisor = _MAGICS[header[:4]]
        except KeyError:
            raise PcapError(f"unknown pcap magic number {header[:4].hex()}") from None
        record_header = struct.Struct(byte_order + "IIII")

        while True:
            raw = stream.read(RECORD_HEADER_SIZE)
            if not raw:
                return
            if len(raw) < RECORD_HEADER_SIZE:
                raise PcapError("truncated pcap record header")
            ts_sec, ts_frac, incl_len, orig_len = record_header.unpack(raw)
            data = stream.read(incl_len)
            if len(data) < incl_len:
                raise PcapError(
                    f"truncated pcap record: expected {incl_len} bytes, got {len(data)}"
                )
            yield PcapRecord(ts_sec, ts_frac // divisor, orig_len, data)


def is_udp(frame: bytes) -> bool:
    """Tell whether an Ethernet frame carries a UDP datagram."""
    if len(frame) < ETHERNET_HEADER_SIZE:
        return False
    ethertype = int.from_bytes(frame[12:14], "big")
    offset = ETHERNET_HEADER_SIZE
    while ethertype in _VLAN_ETHERTYPES:
        if len(frame) < offset + 4:
            return False
        ethertype = int.from_bytes(frame[offset + 2:offset + 4], "big")
        offset += 4
    if ethertype == ETHERTYPE_IPV4:
        return (
            len(frame) >= offset + 20
            and frame[offset] >> 4 == 4
            and frame[offset + 9] == IPPROTO_UDP
        )
    if ethertype == ETHERTYPE_IPV6:
        return len(frame) >= offset + 40 and frame[offset + 6] == IPPROTO_UDP
    return False


def udp_payloads(path: str | PathLike[str]) -> Iterator[tuple[float, bytes]]:
    """Yield (timestamp, payload) for each UDP frame of a capture file.

    The payload is what follows the fixed 42-byte Ethernet/IPv4/UDP header.
    """
    for record in read_pcap(path):
        if is_udp(record.data):
            yield record.timestamp, record.data[UDP_PAYLOAD_OFFSET:]