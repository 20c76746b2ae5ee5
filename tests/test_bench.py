import unittest
from io import StringIO
from unittest.mock import patch

import bench_evaluator


class TestBench(unittest.TestCase):
    def test_generated_boards_are_deterministic(self):
        first = bench_evaluator.generate_boards(count=3, pieces=4, blocked=2, seed=8)
        second = bench_evaluator.generate_boards(count=3, pieces=4, blocked=2, seed=8)
        self.assertEqual(first, second)
        for board in first:
            self.assertEqual(board.count_pieces(), 4)
            self.assertEqual(len(board.blocked), 2)

    def test_main_prints_summary(self):
        out = StringIO()
        with patch("sys.stdout", new=out):
            rc = bench_evaluator.main(["--boards", "2", "--pieces", "3", "--playouts", "5", "--depth", "2"])
        self.assertEqual(rc, 0)
        self.assertIn("summary exhaustive", out.getvalue())
        self.assertIn("summary monte_carlo", out.getvalue())

    def test_main_rejects_overfull_board(self):
        with patch("sys.stdout", new=StringIO()):
            self.assertEqual(bench_evaluator.main(["--pieces", "60", "--blocked", "10"]), 2)


if __name__ == "__main__":
    unittest.main()
