import unittest
from io import StringIO
from unittest.mock import patch

from PySide6.QtCore import QCoreApplication

import cli
from bpb_engine import PieceType
from bpb_session import Session


class TestCLI(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.app = QCoreApplication.instance() or QCoreApplication([])

    def setUp(self) -> None:
        self.session = Session(seed=9, playouts=10, trials=10, delay_ms=0)

    def run_lines(self, *lines):
        out = StringIO()
        with patch("sys.stdout", new=out):
            for line in lines:
                cli.handle_command(self.session, line)
        return out.getvalue()

    def test_read_command_eof_quits(self):
        with patch("builtins.input", side_effect=EOFError), patch("sys.stdout", new=StringIO()):
            self.assertEqual(cli.read_command("> "), "q")

    def test_place_and_eval(self):
        output = self.run_lines("place 3 3 white pawn 0", "place 2 2 black pawn", "eval")
        self.assertIn("Score: 2.0 (exhaustive, white to move)", output)
        self.assertEqual(self.session.board.get(3, 3).kind, PieceType.PAWN)

    def test_place_on_blocked_square(self):
        output = self.run_lines("block 1 1", "place 1 1 black rook")
        self.assertIn("(1,1) is now blocked.", output)
        self.assertIn("Square is blocked.", output)
        self.assertIsNone(self.session.board.get(1, 1))

    def test_rotate_and_move(self):
        output = self.run_lines("place 0 0 white pawn", "rotate 0 0", "move 0 0 4 4", "rotate 4 4", "move 0 0 1 1")
        piece = self.session.board.get(4, 4)
        self.assertEqual(piece.facing, 2)
        self.assertIn("Nothing moved.", output)

    def test_value_commands(self):
        output = self.run_lines("value white-king 1 3.5", "values")
        self.assertIn("white-king[1] = 3.5", output)
        self.assertEqual(self.session.values.get("white-king"), (4.0, 3.5))
        self.run_lines("reset-values")
        self.assertEqual(self.session.values.get("white-king"), (4.0, 2.0))
        with self.assertRaises(ValueError):
            cli.handle_command(self.session, "value white-king 2 1")

    def test_stats(self):
        output = self.run_lines("place 0 0 white knight", "place 6 8 black queen", "stats")
        self.assertIn("White: 1  Black: 1  Balance: 0", output)
        self.assertIn("black-queen: 1", output)

    def test_suggest_and_revert(self):
        output = self.run_lines("suggest")
        self.assertIn("No pieces in the holding area.", output)
        output = self.run_lines("place 3 3 black pawn", "hold 0 0 white knight", "suggest")
        self.assertIn("Suggested placement scores 4.0", output)
        self.assertIsNone(self.session.board.holding_get(0, 0))
        self.run_lines("revert")
        self.assertEqual(self.session.board.holding_get(0, 0).kind, PieceType.KNIGHT)
        self.assertIn("Nothing to revert.", self.run_lines("revert"))

    def test_sim_and_rewind(self):
        self.run_lines("place 3 3 white king")
        before = self.session.board.copy()
        output = self.run_lines("sim")
        self.assertIn("Simulation stopped", output)
        self.assertFalse(self.session.simulator.running)
        self.run_lines("rewind")
        self.assertEqual(self.session.board, before)

    def test_sim_needs_rewind_after_stopping(self):
        self.run_lines("place 3 3 white king", "sim")
        after_run = self.session.board.copy()
        output = self.run_lines("sim")
        self.assertIn("rewind before starting another", output)
        self.assertEqual(self.session.board, after_run)
        output = self.run_lines("rewind", "sim")
        self.assertIn("Simulation stopped", output)

    def test_bad_input_raises_value_error(self):
        for line in ("place 9 9 white pawn", "place a b white pawn", "place 1 1 green pawn", "move 1 1"):
            with self.assertRaises(ValueError):
                cli.handle_command(self.session, line)

    def test_stop_when_idle(self):
        self.assertIn("Simulation is not running.", self.run_lines("stop"))

    def test_unknown_command(self):
        self.assertIn("Unknown command: dance", self.run_lines("dance"))

    def test_main_loop(self):
        inputs = iter(["place 3 3 white pawn", "place 2 2 black pawn", "bogus 1", "place x", "eval black", "q"])
        out = StringIO()
        with (
            patch("builtins.input", side_effect=lambda _prompt="": next(inputs)),
            patch("sys.stdout", new=out),
        ):
            rc = cli.main(["--playouts", "10", "--seed", "1"])
        self.assertEqual(rc, 0)
        text = out.getvalue()
        self.assertIn("Unknown command: bogus", text)
        self.assertIn("expected 2 numbers", text)
        self.assertIn("black to move", text)

    def test_main_rejects_bad_slide(self):
        with patch("sys.stdout", new=StringIO()):
            self.assertEqual(cli.main(["--max-slide", "0"]), 2)

    def test_main_eof_exits(self):
        with patch("builtins.input", side_effect=EOFError), patch("sys.stdout", new=StringIO()):
            self.assertEqual(cli.main([]), 0)

    def test_telemetry_flag_parsing(self):
        with patch.object(cli, "ThreadedTCPSink") as sink_cls:
            cli._telemetry_from("localhost:7000")
        sink_cls.assert_called_once_with("localhost", 7000)
        with patch.dict("os.environ", {cli.TELEMETRY_ENV: ""}):
            self.assertIsNone(cli._telemetry_from(None))
        self.assertIsNone(cli._telemetry_from("nonsense"))


if __name__ == "__main__":
    unittest.main()
