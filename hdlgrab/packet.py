"""Decoding of HDL-32 data packets and conversion of laser returns to points."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import IntEnum

LASERS_PER_FIRING = 32
FIRINGS_PER_PACKET = 12
PACKET_SIZE = 1206
BLOCK_SIZE = 100
NUM_ROT_ANGLES = 36001
DISTANCE_UNIT_M = 0.002

_BLOCK_HEADER = struct.Struct("<HH")
_RETURN = struct.Struct("<HB")
_TRAILER = struct.Struct("<IBB")
_FLOAT32 = struct.Struct("<f")

_HDL32_VERTICAL_CORRECTIONS = (
    -30.67, -9.3299999, -29.33, -8, -28, -6.6700001, -26.67,
    -5.3299999, -25.33, -4, -24, -2.6700001, -22.67, -1.33,
    -21.33, 0, -20, 1.33, -18.67, 2.6700001, -17.33,
    4, -16, 5.3299999, -14.67, 6.6700001, -13.33, 8,
    -12, 9.3299999, -10.67, 10.67,
)


class PacketError(ValueError):
    """Raised when packet data or its values cannot be decoded."""


class HDLBlock(IntEnum):
    """Block identifiers marking which half of the laser bank fired."""

    BLOCK_0_TO_31 = 0xEEFF
    BLOCK_32_TO_63 = 0xDDFF


def _to_float32(value: float) -> float:
    return _FLOAT32.unpack(_FLOAT32.pack(value))[0]


@dataclass(frozen=True)
class PointXYZI:
    """A point in metres with its return intensity."""

    x: float
    y: float
    z: float
    i: float


@dataclass(frozen=True)
class LaserReturn:
    """One laser return: raw distance in 2 mm units and intensity."""

    distance: int
    intensity: int

    @property
    def distance_m(self) -> float:
        return self.distance * DISTANCE_UNIT_M


@dataclass(frozen=True)
class FiringBlock:
    """One firing of 32 lasers at a rotational position (hundredths of a degree)."""

    block_identifier: int
    rotational_position: int
    returns: tuple[LaserReturn, ...]

    @property
    def laser_offset(self) -> int:
        """Index of the first laser this block belongs to."""
        return 0 if self.block_identifier == HDLBlock.BLOCK_0_TO_31 else 32


@dataclass(frozen=True)
class DataPacket:
    """A decoded 1206-byte data packet."""

    blocks: tuple[FiringBlock, ...]
    gps_timestamp: int
    mode: int
    sensor_type: int


@dataclass(frozen=True)
class LaserCorrection:
    """Calibration of a single laser; angles in degrees, offsets in metres."""

    azimuth_correction: float = 0.0
    vertical_correction: float = 0.0
    distance_correction: float = 0.0
    vertical_offset_correction: float = 0.0
    horizontal_offset_correction: float = 0.0
    sin_vert_correction: float = 0.0
    cos_vert_correction: float = 1.0

    @classmethod
    def from_vertical(cls, vertical_correction: float) -> "LaserCorrection":
        rad = math.radians(vertical_correction)
        return cls(
            vertical_correction=vertical_correction,
            sin_vert_correction=math.sin(rad),
            cos_vert_correction=math.cos(rad),
        )


def hdl32_corrections() -> tuple[LaserCorrection, ...]:
    """Return the 64-entry correction table for an HDL-32.

    The first 32 entries carry the HDL-32 vertical angles; the rest are neutral.
    """
    lasers = [LaserCorrection.from_vertical(v) for v in _HDL32_VERTICAL_CORRECTIONS]
    lasers.extend(LaserCorrection() for _ in range(64 - LASERS_PER_FIRING))
    return tuple(lasers)


def _parse_block(chunk: bytes) -> FiringBlock:
    identifier, position = _BLOCK_HEADER.unpack_from(chunk, 0)
    returns = tuple(
        LaserReturn(distance, intensity)
        for distance, intensity in _RETURN.iter_unpack(
            chunk[_BLOCK_HEADER.size:_BLOCK_HEADER.size + LASERS_PER_FIRING * _RETURN.size]
        )
    )
    return FiringBlock(identifier, position, returns)


def parse_packet(data: bytes) -> DataPacket:
    """Decode a raw data packet of exactly 1206 bytes."""
    data = bytes(data)
    if len(data) != PACKET_SIZE:
        raise PacketError(
            f"data packet must be {PACKET_SIZE} bytes, got {len(data)}"
        )
    blocks = tuple(
        _parse_block(data[start:start + BLOCK_SIZE])
        for start in range(0, FIRINGS_PER_PACKET * BLOCK_SIZE, BLOCK_SIZE)
    )
    gps_timestamp, mode, sensor_type = _TRAILER.unpack_from(
        data, FIRINGS_PER_PACKET * BLOCK_SIZE
    )
    return DataPacket(blocks, gps_timestamp, mode, sensor_type)


def compute_xyzi(
    azimuth: int, laser_return: LaserReturn, correction: LaserCorrection
) -> PointXYZI:
    """Convert one laser return at an azimuth (hundredths of a degree) to a point."""
    if correction.azimuth_correction == 0:
        if not 0 <= azimuth < NUM_ROT_ANGLES:
            raise PacketError(
                f"azimuth {azimuth} outside 0..{NUM_ROT_ANGLES - 1}"
            )
        rad = math.radians(azimuth / 100.0)
    else:
        rad = math.radians(azimuth / 100.0 - correction.azimuth_correction)
    cos_azimuth = math.cos(rad)
    sin_azimuth = math.sin(rad)

    distance_m = laser_return.distance_m + correction.distance_correction
    xy_distance = distance_m * correction.cos_vert_correction
    horizontal = correction.horizontal_offset_correction

    return PointXYZI(
        x=_to_float32(xy_distance * sin_azimuth - horizontal * cos_azimuth),
        y=_to_float32(xy_distance * cos_azimuth + horizontal * sin_azimuth),
        z=_to_float32(
            distance_m * correction.sin_vert_correction
            + correction.vertical_offset_correction
        ),
        i=float(laser_return.intensity),
    )