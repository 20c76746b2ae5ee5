"""Telemetry schema and sinks for evaluator, simulator and placement instrumentation."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from queue import Empty, Full, Queue
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple
import json
import logging
import socket
import threading
import time

TELEMETRY_ENV = "BPB_TELEMETRY"

logger = logging.getLogger("bpb.telemetry")


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TelemetryEnvelope:
    event: str
    ts_ms: int
    data: Dict[str, Any]


@dataclass(frozen=True)
class EvalStartEvent:
    strategy: str
    pieces: int
    side_to_move: str


@dataclass(frozen=True)
class EvalEndEvent:
    strategy: str
    score: float
    nodes: int
    playouts: int
    elapsed_ms: int


@dataclass(frozen=True)
class SimStepEvent:
    ply: int
    side: str
    move: Optional[str]
    capture: bool
    no_capture_count: int
    capture_count: int


@dataclass(frozen=True)
class SimEndEvent:
    reason: str
    plies: int
    capture_count: int


@dataclass(frozen=True)
class PlacementEndEvent:
    success: bool
    reason: str
    trials: int
    successful_trials: int
    best_score: Optional[float]
    assignment: List[Tuple[int, Tuple[int, int]]]
    elapsed_ms: int


class TelemetrySink(Protocol):
    def emit(self, envelope: TelemetryEnvelope) -> None:
        ...

    def close(self) -> None:
        ...


class CallbackTelemetrySink:
    def __init__(self, callback: Callable[[TelemetryEnvelope], None]) -> None:
        self._callback = callback

    def emit(self, envelope: TelemetryEnvelope) -> None:
        self._callback(envelope)

    def close(self) -> None:
        return


class QueueTelemetrySink:
    """Hands envelopes to a consumer thread; drops new ones while the queue is full."""

    def __init__(self, queue: "Queue[TelemetryEnvelope]") -> None:
        self.queue = queue
        self.dropped = 0
        self._drop_lock = threading.Lock()

    def emit(self, envelope: TelemetryEnvelope) -> None:
        try:
            self.queue.put_nowait(envelope)
        except Full:
            self._drop()

    def _drop(self) -> None:
        with self._drop_lock:
            self.dropped += 1

    def close(self) -> None:
        return


def encode_envelope(envelope: TelemetryEnvelope) -> bytes:
    """One compact JSON object per line."""
    record = {"event": envelope.event, "ts_ms": envelope.ts_ms, **envelope.data}
    return json.dumps(record, separators=(",", ":"), sort_keys=True).encode("utf-8") + b"\n"


class ThreadedTCPSink(QueueTelemetrySink):
    """JSONL over TCP. A daemon thread owns the socket and reconnects on failure."""

    def __init__(self, host: str, port: int, queue_size: int = 512, retry_s: float = 0.5) -> None:
        super().__init__(Queue(maxsize=queue_size))
        self.address = (host, port)
        self.retry_s = retry_s
        self._closing = threading.Event()
        self._sender = threading.Thread(target=self._send_loop, name="bpb-telemetry", daemon=True)
        self._sender.start()

    def emit(self, envelope: TelemetryEnvelope) -> None:
        if not self._closing.is_set():
            super().emit(envelope)

    def close(self) -> None:
        self._closing.set()
        self._sender.join(timeout=1.0)

    def _send_loop(self) -> None:
        conn: Optional[socket.socket] = None
        while not self._closing.is_set():
            try:
                envelope = self.queue.get(timeout=0.1)
            except Empty:
                continue
            if conn is None:
                conn = self._connect()
            if conn is None:
                self._drop()
                continue
            try:
                conn.sendall(encode_envelope(envelope))
            except OSError:
                self._drop()
                conn.close()
                conn = None
        if conn is not None:
            conn.close()

    def _connect(self) -> Optional[socket.socket]:
        try:
            return socket.create_connection(self.address, timeout=self.retry_s)
        except OSError:
            self._closing.wait(self.retry_s)
            return None


def emit_event(sink: Optional[TelemetrySink], event: str, payload: Mapping[str, Any]) -> None:
    """Deliver one event; a failing sink never interrupts the caller."""
    if sink is None:
        return
    try:
        sink.emit(TelemetryEnvelope(event=event, ts_ms=now_ms(), data=dict(payload)))
    except Exception:
        logger.debug("telemetry sink rejected %s", event, exc_info=True)


def emit_dataclass_event(sink: Optional[TelemetrySink], event: str, payload_obj: object) -> None:
    if sink is not None:
        emit_event(sink, event, asdict(payload_obj))


def parse_host_port(value: str) -> Optional[Tuple[str, int]]:
    """``"host:port"`` -> ``(host, port)``, or None when malformed."""
    host, sep, port_raw = value.strip().rpartition(":")
    host = host.strip()
    if not sep or not host or not port_raw.isdigit():
        return None
    port = int(port_raw)
    if not 0 < port <= 65535:
        return None
    return host, port
