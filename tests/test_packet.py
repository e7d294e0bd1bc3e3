import math
import struct

import pytest

from hdlgrab.packet import (
    DataPacket,
    FiringBlock,
    HDLBlock,
    LaserCorrection,
    LaserReturn,
    PacketError,
    PointXYZI,
    compute_xyzi,
    hdl32_corrections,
    parse_packet,
)


def _build_packet(gps=0x01020304, mode=0x37, sensor=0x21):
    out = bytearray()
    for b in range(12):
        ident = HDLBlock.BLOCK_0_TO_31 if b % 2 == 0 else HDLBlock.BLOCK_32_TO_63
        out += struct.pack("<HH", ident, b * 3000)
        for j in range(32):
            out += struct.pack("<HB", b * 100 + j, (b + j) % 256)
    out += struct.pack("<IBB", gps, mode, sensor)
    return bytes(out)


def test_block_identifier_values():
    data = bytearray(1206)
    data[0:2] = b"\xff\xee"
    data[100:102] = b"\xff\xdd"
    packet = parse_packet(data)
    assert packet.blocks[0].block_identifier == HDLBlock.BLOCK_0_TO_31
    assert packet.blocks[0].block_identifier == 0xEEFF
    assert packet.blocks[1].block_identifier == HDLBlock.BLOCK_32_TO_63
    assert packet.blocks[1].block_identifier == 0xDDFF


def test_hdl32_corrections_table():
    table = hdl32_corrections()
    assert len(table) == 64
    assert table[0].vertical_correction == -30.67
    assert table[31].vertical_correction == 10.67
    for c in table[:32]:
        assert c.sin_vert_correction == pytest.approx(
            math.sin(math.radians(c.vertical_correction))
        )
        assert c.cos_vert_correction ** 2 + c.sin_vert_correction ** 2 == pytest.approx(1.0)
    for c in table[32:]:
        assert c == LaserCorrection()
        assert c.cos_vert_correction == 1.0


def test_parse_packet_round_trip():
    packet = parse_packet(_build_packet())
    assert isinstance(packet, DataPacket)
    assert len(packet.blocks) == 12
    assert packet.gps_timestamp == 0x01020304
    assert packet.mode == 0x37
    assert packet.sensor_type == 0x21
    for b, block in enumerate(packet.blocks):
        assert block.rotational_position == b * 3000
        assert len(block.returns) == 32
        assert block.returns[5] == LaserReturn(b * 100 + 5, (b + 5) % 256)


def test_parse_packet_is_little_endian():
    data = bytearray(1206)
    data[0:2] = b"\xff\xee"
    data[2:4] = b"\x10\x27"
    packet = parse_packet(data)
    assert packet.blocks[0].block_identifier == HDLBlock.BLOCK_0_TO_31
    assert packet.blocks[0].rotational_position == 10000


def test_block_laser_offset():
    packet = parse_packet(_build_packet())
    assert packet.blocks[0].laser_offset == 0
    assert packet.blocks[1].laser_offset == 32


@pytest.mark.parametrize("size", [0, 1205, 1207, 1248])
def test_parse_packet_wrong_size(size):
    with pytest.raises(PacketError):
        parse_packet(bytes(size))


def test_compute_xyzi_preserves_range():
    table = hdl32_corrections()
    ret = LaserReturn(distance=5000, intensity=77)
    for laser in (0, 7, 31):
        for azimuth in (0, 4500, 17999, 36000):
            p = compute_xyzi(azimuth, ret, table[laser])
            assert isinstance(p, PointXYZI)
            assert p.i == 77.0
            assert math.sqrt(p.x ** 2 + p.y ** 2 + p.z ** 2) == pytest.approx(
                ret.distance_m, rel=1e-5
            )


def test_compute_xyzi_axes():
    flat = LaserCorrection()
    ret = LaserReturn(distance=1000, intensity=1)
    ahead = compute_xyzi(0, ret, flat)
    assert ahead.x == pytest.approx(0.0, abs=1e-6)
    assert ahead.y == pytest.approx(ret.distance_m)
    assert ahead.z == 0.0
    side = compute_xyzi(9000, ret, flat)
    assert side.x == pytest.approx(ret.distance_m)
    assert side.y == pytest.approx(0.0, abs=1e-6)


def test_compute_xyzi_vertical_sign():
    table = hdl32_corrections()
    ret = LaserReturn(distance=2000, intensity=0)
    assert compute_xyzi(0, ret, table[0]).z < 0
    assert compute_xyzi(0, ret, table[31]).z > 0
    assert compute_xyzi(0, ret, table[15]).z == 0.0


def test_azimuth_correction_shifts_angle():
    ret = LaserReturn(distance=3000, intensity=9)
    shifted = compute_xyzi(9000, ret, LaserCorrection(azimuth_correction=90.0))
    plain = compute_xyzi(0, ret, LaserCorrection())
    assert shifted.x == pytest.approx(plain.x, abs=1e-6)
    assert shifted.y == pytest.approx(plain.y, abs=1e-6)


def test_offsets_applied():
    ret = LaserReturn(distance=1000, intensity=0)
    base = compute_xyzi(0, ret, LaserCorrection())
    moved = compute_xyzi(
        0,
        ret,
        LaserCorrection(horizontal_offset_correction=0.5, vertical_offset_correction=0.25),
    )
    assert moved.x == pytest.approx(base.x - 0.5)
    assert moved.y == pytest.approx(base.y)
    assert moved.z == pytest.approx(base.z + 0.25)


def test_distance_correction_extends_range():
    ret = LaserReturn(distance=1000, intensity=0)
    p = compute_xyzi(0, ret, LaserCorrection(distance_correction=1.0))
    assert p.y == pytest.approx(ret.distance_m + 1.0)


@pytest.mark.parametrize("azimuth", [-1, 36001, 65535])
def test_compute_xyzi_azimuth_out_of_range(azimuth):
    with pytest.raises(PacketError):
        compute_xyzi(azimuth, LaserReturn(1, 1), LaserCorrection())


def test_firing_block_from_packet_matches_compute():
    packet = parse_packet(_build_packet())
    table = hdl32_corrections()
    block: FiringBlock = packet.blocks[2]
    points = [
        compute_xyzi(block.rotational_position, r, table[j])
        for j, r in enumerate(block.returns)
    ]
    assert len(points) == 32
    assert [p.i for p in points] == [float(r.intensity) for r in block.returns]