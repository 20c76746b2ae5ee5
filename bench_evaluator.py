"""Deterministic benchmark harness for the board evaluators."""

from __future__ import annotations

import argparse
import gc
import math
import platform
import random
import statistics
import sys
import time
from typing import List, Optional, Sequence

from bpb_engine import COLS, MAX_SLIDE, ROWS, Board, Color, Piece, PieceType
from bpb_evaluator import MAX_DEPTH, ExhaustiveEvaluator, MonteCarloEvaluator
from bpb_values import PieceValueTable

KINDS = tuple(PieceType)


def generate_boards(*, count: int, pieces: int, blocked: int, seed: int) -> List[Board]:
    rng = random.Random(seed)
    squares = [(r, c) for r in range(ROWS) for c in range(COLS)]
    boards: List[Board] = []
    for _ in range(count):
        board = Board()
        chosen = rng.sample(squares, pieces + blocked)
        for piece_id, (row, col) in enumerate(chosen[:pieces], start=1):
            color = Color.WHITE if piece_id % 2 else Color.BLACK
            board.put(row, col, Piece(piece_id, rng.choice(KINDS), color, rng.randrange(4)))
        for row, col in chosen[pieces:]:
            board.set_blocked(row, col, True)
        boards.append(board)
    return boards


def _percentile(values: Sequence[float], percentile: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    if len(ordered) == 1:
        return float(ordered[0])
    rank = (len(ordered) - 1) * percentile
    lo = math.floor(rank)
    hi = math.ceil(rank)
    if lo == hi:
        return float(ordered[lo])
    frac = rank - lo
    return float(ordered[lo] * (1.0 - frac) + ordered[hi] * frac)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Deterministic evaluator benchmark")
    parser.add_argument("--boards", type=int, default=10, help="number of boards (default: 10)")
    parser.add_argument("--pieces", type=int, default=5, help="pieces per board (default: 5)")
    parser.add_argument("--blocked", type=int, default=3, help="blocked squares per board (default: 3)")
    parser.add_argument("--seed", type=int, default=12345, help="random seed for board generation")
    parser.add_argument("--depth", type=int, default=MAX_DEPTH, help=f"exhaustive depth (default: {MAX_DEPTH})")
    parser.add_argument("--playouts", type=int, default=200, help="Monte Carlo playouts (default: 200)")
    parser.add_argument("--max-slide", type=int, default=MAX_SLIDE, help=f"slide range (default: {MAX_SLIDE})")
    parser.add_argument(
        "--strategy",
        choices=("exhaustive", "monte_carlo", "both"),
        default="both",
        help="which evaluator to time (default: both)",
    )
    parser.add_argument("--no-gc", action="store_true", help="disable GC during benchmark loop")
    args = parser.parse_args(argv)

    if args.boards <= 0:
        print("--boards must be > 0")
        return 2
    if args.pieces < 0 or args.blocked < 0 or args.pieces + args.blocked > ROWS * COLS:
        print("--pieces/--blocked must fit on the board")
        return 2
    if args.playouts <= 0:
        print("--playouts must be > 0")
        return 2

    boards = generate_boards(count=args.boards, pieces=args.pieces, blocked=args.blocked, seed=args.seed)
    values = PieceValueTable()
    evaluators = []
    if args.strategy in ("exhaustive", "both"):
        evaluators.append(ExhaustiveEvaluator(values, max_depth=args.depth, max_slide=args.max_slide))
    if args.strategy in ("monte_carlo", "both"):
        evaluators.append(
            MonteCarloEvaluator(
                values,
                playouts=args.playouts,
                max_slide=args.max_slide,
                rng=random.Random(args.seed),
            )
        )

    print(
        f"python={sys.version.split()[0]} platform={platform.platform()} "
        f"boards={len(boards)} pieces={args.pieces} blocked={args.blocked} seed={args.seed}"
    )

    gc_was_enabled = gc.isenabled()
    if args.no_gc and gc_was_enabled:
        gc.disable()
    try:
        for evaluator in evaluators:
            timings: List[float] = []
            for idx, board in enumerate(boards, start=1):
                start_ns = time.perf_counter_ns()
                score = evaluator.evaluate(board, Color.WHITE)
                elapsed_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                timings.append(elapsed_ms)
                work = getattr(evaluator, "last_nodes", None) or getattr(evaluator, "last_playouts", 0)
                print(f"{evaluator.name:>11} {idx:03d} score={score:>8.2f} work={work:>8d} ms={elapsed_ms:>9.1f}")
            print(
                f"summary {evaluator.name} mean={statistics.fmean(timings):.1f} "
                f"p50={_percentile(timings, 0.50):.1f} p95={_percentile(timings, 0.95):.1f} "
                f"max={max(timings):.1f}"
            )
    finally:
        if args.no_gc and gc_was_enabled:
            gc.enable()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
