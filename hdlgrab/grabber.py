"""Threaded acquisition of HDL-32 packets from a capture file or a UDP port."""

from __future__ import annotations

import logging
import queue
import select
import socket
import threading
from collections.abc import Callable
from enum import Enum
from os import PathLike

from hdlgrab.packet import (
    LASERS_PER_FIRING,
    PACKET_SIZE,
    PacketError,
    PointXYZI,
    compute_xyzi,
    hdl32_corrections,
    parse_packet,
)
from hdlgrab.pcap import PcapError, udp_payloads

log = logging.getLogger(__name__)

DEFAULT_PORT = 2368
_INITIAL_AZIMUTH = 65000
_POLL_TIMEOUT_S = 1.0
_POLL_SLICE_S = 0.1
_QUEUE_WAIT_S = 0.05

SweepCallback = Callable[[list[PointXYZI]], None]


class ReadMode(Enum):
    """Where the grabber takes its packets from."""

    PCAP = 0
    SOCKET = 1
    NONE = 2


class GrabberError(RuntimeError):
    """Raised when the grabber cannot be set up or started."""


class LidarGrabber:
    """Reads packets, converts them to points and reports complete sweeps."""

    def __init__(
        self,
        pcap_file: str | PathLike[str] | None = None,
        ip_address: str | None = None,
        port: int = DEFAULT_PORT,
    ) -> None:
        self.pcap_file = pcap_file
        self.ip_address = ip_address
        self.port = port
        self._corrections = hdl32_corrections()
        self._last_azimuth = _INITIAL_AZIMUTH
        self._callbacks: list[SweepCallback] = []
        self._packets: queue.Queue[bytes] = queue.Queue()
        self._current: list[PointXYZI] = []
        self._current_lock = threading.Lock()
        self._whole: list[PointXYZI] = []
        self._whole_lock = threading.Lock()
        self._running = False
        self._stop_requested = threading.Event()
        self._reader: threading.Thread | None = None
        self._processor: threading.Thread | None = None
        self._sock: socket.socket | None = None

        if pcap_file:
            self.mode = ReadMode.PCAP
        elif ip_address:
            self.mode = ReadMode.SOCKET
            self._open_socket()
        else:
            self.mode = ReadMode.NONE
            raise GrabberError("either a pcap file or an IP address is required")

    def _open_socket(self) -> None:
        log.info("Opening UDP socket: port %d", self.port)
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(("", self.port))
            sock.setblocking(False)
        except OSError as exc:
            sock.close()
            raise GrabberError(f"socket bind failed on port {self.port}: {exc}") from exc
        self._sock = sock
        self.port = sock.getsockname()[1]
        log.info("Velodyne socket fd is %d, port %d", sock.fileno(), self.port)

    def __enter__(self) -> "LidarGrabber":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def register_callback(self, callback: SweepCallback) -> None:
        """Call ``callback`` with the points of every completed sweep."""
        if not callable(callback):
            raise TypeError("callback must be callable")
        self._callbacks.append(callback)

    def start(self) -> None:
        """Start the reading and processing threads."""
        if self._running:
            raise GrabberError("grabber is already running")
        if self.mode is ReadMode.SOCKET and self._sock is None:
            raise GrabberError("socket is closed")
        self._stop_requested.clear()
        self._running = True
        target = (
            self._read_from_pcap if self.mode is ReadMode.PCAP else self._read_from_socket
        )
        self._reader = threading.Thread(target=target, daemon=True)
        self._processor = threading.Thread(target=self._process_packets, daemon=True)
        self._reader.start()
        self._processor.start()

    def stop(self) -> None:
        """Stop reading and wait for both threads to finish."""
        self._stop_requested.set()
        if self._reader is not None:
            self._reader.join()
            self._reader = None
        if self._processor is not None:
            self._processor.join()
            self._processor = None
        self._running = False

    def is_running(self) -> bool:
        return self._running

    def current_packet(self) -> list[PointXYZI]:
        """Points of the most recently processed packet."""
        with self._current_lock:
            return list(self._current)

    def whole_packet(self) -> list[PointXYZI]:
        """Points gathered so far in the sweep being built."""
        with self._whole_lock:
            return list(self._whole)

    def enqueue_packet(self, data: bytes) -> bool:
        """Queue a data packet for processing; packets of the wrong size are dropped."""
        if len(data) != PACKET_SIZE:
            return False
        self._packets.put(bytes(data))
        return True

    def process_packet(self, data: bytes) -> list[PointXYZI]:
        """Convert one data packet to points, reporting a sweep when the azimuth wraps."""
        packet = parse_packet(data)
        with self._current_lock:
            self._current.clear()
        points: list[PointXYZI] = []
        for block in packet.blocks:
            position = block.rotational_position
            if position < self._last_azimuth:
                with self._whole_lock:
                    sweep = list(self._whole)
                    self._whole.clear()
                for callback in list(self._callbacks):
                    callback(sweep)
            block_points = [
                compute_xyzi(position, laser_return, self._corrections[laser])
                for laser, laser_return in enumerate(block.returns[:LASERS_PER_FIRING])
            ]
            with self._current_lock:
                self._current.extend(block_points)
            with self._whole_lock:
                self._whole.extend(block_points)
            points.extend(block_points)
            self._last_azimuth = position
        return points

    def _read_from_pcap(self) -> None:
        try:
            last_timestamp: float | None = None
            for timestamp, payload in udp_payloads(self.pcap_file):
                delay = 0.0 if last_timestamp is None else max(0.0, timestamp - last_timestamp)
                last_timestamp = timestamp
                if self._stop_requested.wait(delay):
                    break
                self.enqueue_packet(payload)
        except (OSError, PcapError) as exc:
            log.error("reading %s failed: %s", self.pcap_file, exc)
        finally:
            self._running = False

    def _socket_available(self) -> bool:
        waited = 0.0
        while waited < _POLL_TIMEOUT_S:
            if self._stop_requested.is_set() or self._sock is None:
                return False
            try:
                readable, _, errored = select.select(
                    [self._sock], [], [self._sock], _POLL_SLICE_S
                )
            except (OSError, ValueError) as exc:
                log.warning("Velodyne port %d poll() error: %s", self.port, exc)
                return False
            if errored:
                log.error("Velodyne port %d poll() reports Velodyne error", self.port)
                return False
            if readable:
                return True
            waited += _POLL_SLICE_S
        log.warning("Velodyne port %d poll() timeout", self.port)
        return False

    def _read_from_socket(self) -> None:
        try:
            while self._socket_available():
                try:
                    data = self._sock.recv(65535)
                except BlockingIOError:
                    continue
                except OSError as exc:
                    log.error("recv failed on port %d: %s", self.port, exc)
                    return
                if len(data) == PACKET_SIZE:
                    self.enqueue_packet(data)
                else:
                    log.info(
                        "Incomplete Velodyne data packet read: %d bytes from port %d",
                        len(data),
                        self.port,
                    )
        finally:
            self._running = False

    def _handle(self, data: bytes) -> None:
        try:
            self.process_packet(data)
        except PacketError as exc:
            log.warning("dropping packet: %s", exc)

    def _process_packets(self) -> None:
        while True:
            try:
                data = self._packets.get(timeout=_QUEUE_WAIT_S)
            except queue.Empty:
                if not self._running:
                    break
                continue
            self._handle(data)
        while True:
            try:
                data = self._packets.get_nowait()
            except queue.Empty:
                return
            self._handle(data)