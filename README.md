# hdlgrab

Decode data packets from an HDL-32 lidar into point clouds of `x, y, z, intensity`
points. Packets can come from a pcap capture file (replayed with the timing
between captured frames) or from a UDP socket.

## Install

    pip install .

For running the tests:

    pip install ".[test]"
    pytest

## Decoding a single packet

A data packet is 1206 bytes: twelve firing blocks of 32 laser returns each,
followed by a GPS timestamp, a mode byte and a sensor-type byte.

```python
from hdlgrab.packet import parse_packet, hdl32_corrections, compute_xyzi

packet = parse_packet(data)          # raises PacketError unless len(data) == 1206
corrections = hdl32_corrections()    # 64 LaserCorrection entries
for block in packet.blocks:
    for laser, ret in enumerate(block.returns):
        point = compute_xyzi(block.rotational_position, ret, corrections[laser])
        print(point.x, point.y, point.z, point.i)
print(packet.gps_timestamp, packet.mode, packet.sensor_type)
```

Rotational positions are in hundredths of a degree and raw distances in 2 mm
units (`LaserReturn.distance_m` gives metres). `FiringBlock.laser_offset` is 0
for `HDLBlock.BLOCK_0_TO_31` blocks and 32 otherwise. `compute_xyzi` raises
`PacketError` for an azimuth outside 0..36000 when the laser has no azimuth
correction; coordinates are rounded to single precision.

## Reading captures

```python
from hdlgrab.pcap import read_pcap, udp_payloads

for timestamp, payload in udp_payloads("capture.pcap"):
    ...
```

`read_pcap` yields every `PcapRecord` (`ts_sec`, `ts_usec`, `orig_len`, `data`,
and a `timestamp` in seconds) of a classic pcap file in either byte order, with
microsecond or nanosecond timestamps. `is_udp` tells whether a captured Ethernet
frame (optionally VLAN-tagged, IPv4 or IPv6) carries UDP. `udp_payloads` yields
what follows the first 42 bytes of each UDP frame. Malformed or truncated files
raise `PcapError`.

## Grabbing sweeps

`LidarGrabber` reads packets in one background thread, turns them into points in
another and calls every registered callback with the points of a whole sweep each
time the azimuth wraps around.

```python
from hdlgrab.grabber import LidarGrabber

with LidarGrabber(pcap_file="capture.pcap") as grabber:
    grabber.register_callback(lambda cloud: print(len(cloud), "points"))
    grabber.start()
    while grabber.is_running():
        ...
```

Pass `ip_address` and `port` (2368 by default; 0 picks a free port) instead of
`pcap_file` to listen on UDP. Giving neither, failing to bind the socket, or
starting a grabber that is already running raises `GrabberError`.
`current_packet()` returns the points of the last packet decoded and
`whole_packet()` the points gathered so far in the sweep under way.
`enqueue_packet(data)` queues a packet (and drops anything not 1206 bytes long);
`process_packet(data)` decodes one packet straight away and returns its points.
`stop()` waits for both threads; leaving the `with` block also closes the socket.

## View state

`hdlgrab.view.ViewState` keeps the rotation (`x_rot`, `y_rot`), zoom (`scale`)
and last pointer position of a point-cloud view. `special_key` takes GLUT
special-key codes (`SpecialKey`): arrows rotate by 5 degrees, page up/down zoom
by a factor of 1.1 and F1 sets `quit_requested`. `mouse_button` anchors a drag
on the left button (0) and zooms on wheel buttons 3 and 4; `mouse_move` rotates
by eight times the drag distance, with `normalize_angle` keeping the result in
0..5760.

## What it does not do

The package has no window and no command: it does not draw point clouds. It
decodes, groups and hands over points, and tracks view state for a renderer you
supply. Laser calibrations are the fixed HDL-32 vertical angles; no calibration
file is read.