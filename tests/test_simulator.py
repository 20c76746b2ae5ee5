import time
import unittest

from PySide6.QtCore import QCoreApplication

from bpb_engine import Color, Piece, PieceType
from bpb_session import Session
from bpb_simulator import IDLE, RUNNING, STOP_STALL, STOP_USER, STOPPED


class _Recorder:
    def __init__(self) -> None:
        self.statuses = []
        self.reasons = []

    def on_stepped(self, status) -> None:
        self.statuses.append(status)

    def on_stopped(self, reason: str) -> None:
        self.reasons.append(reason)


class TestSimulator(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.app = QCoreApplication.instance() or QCoreApplication([])

    def setUp(self) -> None:
        self.session = Session(seed=5, delay_ms=10_000)
        self.sim = self.session.simulator
        self.recorder = _Recorder()
        self.sim.stepped.connect(self.recorder.on_stepped)
        self.sim.stopped.connect(self.recorder.on_stopped)

    def tearDown(self) -> None:
        self.sim.stop()

    def _place(self, row, col, kind, color, facing=0):
        piece = self.session.new_piece(kind, color, facing)
        self.session.place(row, col, piece)
        return piece

    def test_first_step_takes_available_capture(self):
        pawn = self._place(3, 3, PieceType.PAWN, Color.WHITE, 0)
        self._place(2, 2, PieceType.PAWN, Color.BLACK, 0)
        self.assertTrue(self.sim.start())
        status = self.sim.status()
        self.assertEqual(status.state, RUNNING)
        self.assertEqual(status.capture_count, 1)
        self.assertEqual(status.no_capture_count, 0)
        self.assertEqual(status.side_to_move, Color.BLACK)
        self.assertIs(self.session.board.get(2, 2), pawn)
        self.assertIsNone(self.session.board.get(3, 3))
        self.assertEqual(len(self.recorder.statuses), 1)

    def test_moves_are_logged(self):
        self._place(3, 3, PieceType.PAWN, Color.WHITE, 0)
        self._place(2, 2, PieceType.PAWN, Color.BLACK, 0)
        with self.assertLogs("bpb.sim", level="INFO") as logs:
            self.sim.start()
            self.sim.stop()
        text = "\n".join(logs.output)
        self.assertIn("white-pawn#1 captured black-pawn#2 (3, 3) -> (2, 2)", text)
        self.assertIn("simulation stopped by user", text)
        self.assertIn("captures: 1, plies: 1", text)

    def test_stops_after_four_quiet_plies(self):
        self._place(3, 3, PieceType.KING, Color.WHITE)
        self.sim.start()
        self.sim.step()
        self.sim.step()
        self.assertEqual(self.sim.state, RUNNING)
        self.sim.step()
        self.assertEqual(self.sim.state, STOPPED)
        self.assertEqual(self.recorder.reasons, [STOP_STALL])
        self.assertEqual(self.sim.plies, 3)
        self.assertEqual(self.sim.no_capture_count, 4)

    def test_empty_board_only_passes(self):
        self.sim.start()
        for _ in range(3):
            self.sim.step()
        self.assertEqual(self.sim.state, STOPPED)
        self.assertTrue(self.session.board.is_empty())

    def test_start_ignored_while_running(self):
        self._place(3, 3, PieceType.KING, Color.WHITE)
        self.assertTrue(self.sim.start())
        self.assertFalse(self.sim.start())
        self.assertEqual(self.sim.plies, 1)

    def test_stop_by_user(self):
        self._place(3, 3, PieceType.KING, Color.WHITE)
        self.sim.start()
        self.assertTrue(self.sim.stop())
        self.assertEqual(self.sim.state, STOPPED)
        self.assertEqual(self.recorder.reasons, [STOP_USER])
        plies = self.sim.plies
        self.sim.step()
        self.assertEqual(self.sim.plies, plies)
        self.assertFalse(self.sim.stop())

    def test_reset_restores_snapshot(self):
        self._place(3, 3, PieceType.PAWN, Color.WHITE, 0)
        self._place(2, 2, PieceType.PAWN, Color.BLACK, 0)
        self._place(6, 8, PieceType.ROOK, Color.BLACK)
        self.session.toggle_blocked(0, 0)
        before = self.session.board.copy()
        self.sim.start()
        self.sim.step()
        self.sim.step()
        self.assertNotEqual(self.session.board, before)
        self.sim.reset()
        self.assertEqual(self.session.board, before)
        status = self.sim.status()
        self.assertEqual(status.state, IDLE)
        self.assertEqual(status.capture_count, 0)
        self.assertEqual(status.plies, 0)
        self.assertEqual(status.side_to_move, Color.WHITE)

    def test_reset_without_run_leaves_board(self):
        self._place(1, 1, PieceType.QUEEN, Color.BLACK)
        before = self.session.board.copy()
        self.sim.reset()
        self.assertEqual(self.session.board, before)
        self.assertEqual(self.sim.state, IDLE)

    def test_stopped_is_terminal_until_reset(self):
        self._place(3, 3, PieceType.KING, Color.WHITE)
        before = self.session.board.copy()
        self.assertTrue(self.sim.start())
        self.sim.stop()
        moved = self.session.board.copy()
        self.assertFalse(self.sim.start())
        self.assertEqual(self.sim.state, STOPPED)
        self.assertEqual(self.session.board, moved)
        self.sim.reset()
        self.assertEqual(self.session.board, before)
        self.assertTrue(self.sim.start())
        self.assertEqual(self.sim.state, RUNNING)
        self.assertEqual(self.sim.plies, 1)

    def test_timer_drives_steps(self):
        session = Session(seed=2, delay_ms=0)
        sim = session.simulator
        session.place(3, 3, Piece(1, PieceType.KNIGHT, Color.WHITE))
        sim.start()
        deadline = time.monotonic() + 5.0
        while sim.running and time.monotonic() < deadline:
            self.app.processEvents()
        self.assertEqual(sim.state, STOPPED)
        self.assertEqual(sim.no_capture_count, 4)


if __name__ == "__main__":
    unittest.main()
