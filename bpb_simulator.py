"""Turn-based random autoplay paced by a Qt timer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
import logging
import random

from PySide6.QtCore import QObject, QTimer, Signal

from bpb_engine import Board, Color, Move, all_moves, opposite, split_moves
from bpb_telemetry import SimEndEvent, SimStepEvent, TelemetrySink, emit_dataclass_event

if TYPE_CHECKING:
    from bpb_session import Session

STEP_DELAY_MS = 500
STALL_LIMIT = 4

IDLE = "idle"
RUNNING = "running"
STOPPED = "stopped"

STOP_STALL = "stall"
STOP_USER = "user"

logger = logging.getLogger("bpb.sim")


@dataclass(frozen=True)
class SimulationStatus:
    state: str
    side_to_move: Color
    no_capture_count: int
    capture_count: int
    plies: int


class Simulator(QObject):
    """Plays one ply per timer tick until four plies pass without a capture.

    The side to move captures when it can (uniformly among captures),
    otherwise makes a uniformly random quiet move, otherwise passes.
    """

    stepped = Signal(object)
    stopped = Signal(str)

    def __init__(
        self,
        session: "Session",
        rng: Optional[random.Random] = None,
        delay_ms: int = STEP_DELAY_MS,
        telemetry_sink: Optional[TelemetrySink] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.session = session
        self.rng = rng if rng is not None else random.Random()
        self.delay_ms = delay_ms
        self.telemetry_sink = telemetry_sink
        self.state = IDLE
        self.side_to_move = Color.WHITE
        self.no_capture_count = 0
        self.capture_count = 0
        self.plies = 0
        self.snapshot: Optional[Board] = None
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._tick)

    @property
    def running(self) -> bool:
        return self.state == RUNNING

    def status(self) -> SimulationStatus:
        return SimulationStatus(
            state=self.state,
            side_to_move=self.side_to_move,
            no_capture_count=self.no_capture_count,
            capture_count=self.capture_count,
            plies=self.plies,
        )

    def start(self) -> bool:
        """Begin from Idle only; a stopped run must be reset first."""
        if self.state != IDLE:
            return False
        self.snapshot = self.session.board.copy()
        self._reset_counters()
        self.state = RUNNING
        logger.info("simulation started")
        self.step()
        return True

    def step(self) -> None:
        """Play a single ply; schedules the next one while running."""
        if not self.running:
            return
        captures, quiet = split_moves(all_moves(self.side_to_move, self.session.board, self.session.max_slide))
        move: Optional[Move] = None
        if captures:
            move = self.rng.choice(captures)
            self.capture_count += 1
            self.no_capture_count = 0
        elif quiet:
            move = self.rng.choice(quiet)
            self.no_capture_count += 1
        else:
            self.no_capture_count += 1

        if self.no_capture_count >= STALL_LIMIT:
            self._finish(STOP_STALL)
            return

        side = self.side_to_move
        if move is not None:
            self.session.apply_move(move)
            logger.info("%s", move)
        else:
            logger.info("%s passes", side.value)
        self.plies += 1
        self.side_to_move = opposite(side)
        emit_dataclass_event(
            self.telemetry_sink,
            "sim_step",
            SimStepEvent(
                ply=self.plies,
                side=side.value,
                move=str(move) if move is not None else None,
                capture=move is not None and move.is_capture,
                no_capture_count=self.no_capture_count,
                capture_count=self.capture_count,
            ),
        )
        self.stepped.emit(self.status())
        if self.running:
            self._timer.start(self.delay_ms)

    def stop(self) -> bool:
        if not self.running:
            return False
        self._finish(STOP_USER)
        return True

    def reset(self) -> None:
        self._timer.stop()
        self.state = IDLE
        self._reset_counters()
        if self.snapshot is not None:
            self.session.restore_board(self.snapshot)
        self.stepped.emit(self.status())

    def _tick(self) -> None:
        if self.running:
            self.step()

    def _reset_counters(self) -> None:
        self.side_to_move = Color.WHITE
        self.no_capture_count = 0
        self.capture_count = 0
        self.plies = 0

    def _finish(self, reason: str) -> None:
        self._timer.stop()
        self.state = STOPPED
        if reason == STOP_STALL:
            logger.info("simulation stopped: %d plies without a capture", STALL_LIMIT)
        else:
            logger.info("simulation stopped by user")
        logger.info("captures: %d, plies: %d", self.capture_count, self.plies)
        emit_dataclass_event(
            self.telemetry_sink,
            "sim_end",
            SimEndEvent(reason=reason, plies=self.plies, capture_count=self.capture_count),
        )
        self.stopped.emit(reason)
