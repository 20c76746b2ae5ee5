"""Interactive CLI for the Backpack Battles chess board scoring tool."""

from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from PySide6.QtCore import QCoreApplication

from bpb_engine import MAX_SLIDE, Color, pretty_print
from bpb_evaluator import MAX_DEPTH, PLAYOUTS
from bpb_placement import PLACEMENT_TRIALS
from bpb_session import Session
from bpb_simulator import STEP_DELAY_MS, STOPPED
from bpb_telemetry import TELEMETRY_ENV, TelemetrySink, ThreadedTCPSink, parse_host_port
from bpb_values import ON_CAPTURE, ON_CAPTURED, parse_piece_key

HELP_TEXT = """\
Board (rows 0-6, cols 0-8):
  show                         print the board and holding area
  place R C COLOR TYPE [FACE]  drop a new piece (FACE 0-3 for pawns)
  hold R C COLOR TYPE          drop a new piece in the holding area (rows 0-1)
  remove R C                   remove a piece
  move R C R C                 move a piece
  block R C                    toggle an impassable square
  rotate R C                   turn a pawn clockwise
  clear                        empty everything
Scores:
  value COLOR-TYPE SLOT VALUE  set a value (slot 0 = on capture, 1 = on captured / king support)
  values                       list the value table
  reset-values                 restore default values
  eval [white|black]           evaluate the board
  stats                        piece counts and evaluation
Engine:
  sim                          run the random autoplay until it stalls
  stop                         stop a running autoplay
  rewind                       restore the board from before the last sim
  suggest                      place holding pieces for the best score
  revert                       undo the last suggestion
  h / help, q / quit"""


def read_command(prompt: str) -> str:
    try:
        return input(prompt).strip()
    except EOFError:
        print()
        return "q"


def _ints(args: List[str], count: int) -> List[int]:
    if len(args) < count:
        raise ValueError(f"expected {count} numbers")
    try:
        return [int(a) for a in args[:count]]
    except ValueError:
        raise ValueError("coordinates must be integers") from None


def _piece_args(args: List[str]):
    if len(args) < 2:
        raise ValueError("expected COLOR TYPE")
    return parse_piece_key(f"{args[0]}-{args[1]}")


def run_simulation(session: Session) -> None:
    app = QCoreApplication.instance() or QCoreApplication([])
    simulator = session.simulator
    if simulator.state == STOPPED:
        print("Simulation already ran; rewind before starting another.")
        return
    simulator.stopped.connect(app.quit)
    try:
        if simulator.start() and simulator.running:
            app.exec()
    finally:
        simulator.stopped.disconnect(app.quit)
    status = simulator.status()
    print(pretty_print(session.board))
    print(f"Simulation {status.state}: {status.capture_count} captures in {status.plies} plies")


def handle_command(session: Session, line: str) -> bool:
    """Run one command line. Returns False when the loop should end."""
    parts = line.split()
    if not parts:
        return True
    cmd, args = parts[0].lower(), parts[1:]

    if cmd in {"q", "quit"}:
        return False
    if cmd in {"h", "help"}:
        print(HELP_TEXT)
    elif cmd == "show":
        print(pretty_print(session.board))
    elif cmd == "place":
        row, col = _ints(args, 2)
        color, kind = _piece_args(args[2:])
        facing = int(args[4]) if len(args) > 4 else 0
        if not session.place(row, col, session.new_piece(kind, color, facing)):
            print("Square is blocked.")
    elif cmd == "hold":
        row, col = _ints(args, 2)
        color, kind = _piece_args(args[2:])
        session.hold(row, col, session.new_piece(kind, color))
    elif cmd == "remove":
        row, col = _ints(args, 2)
        if session.remove(row, col) is None:
            print("Nothing to remove.")
    elif cmd == "move":
        r1, c1, r2, c2 = _ints(args, 4)
        if not session.move((r1, c1), (r2, c2)):
            print("Nothing moved.")
    elif cmd == "block":
        row, col = _ints(args, 2)
        state = "blocked" if session.toggle_blocked(row, col) else "open"
        print(f"({row},{col}) is now {state}.")
    elif cmd == "rotate":
        row, col = _ints(args, 2)
        if not session.rotate(row, col):
            print("Only pawns can be rotated.")
    elif cmd == "clear":
        session.clear()
    elif cmd == "value":
        if len(args) != 3 or args[1] not in {str(ON_CAPTURE), str(ON_CAPTURED)}:
            raise ValueError("usage: value COLOR-TYPE SLOT VALUE")
        value = session.set_value(args[0], int(args[1]), args[2])
        print(f"{args[0]}[{args[1]}] = {value:g}")
    elif cmd == "values":
        for key, (on_capture, on_captured) in session.values.as_dict().items():
            print(f"{key:<14} {on_capture:>5g} {on_captured:>5g}")
    elif cmd == "reset-values":
        session.reset_values()
    elif cmd == "eval":
        side = Color(args[0].lower()) if args else Color.WHITE
        score = session.evaluate(side)
        print(f"Score: {score:.1f} ({session.evaluator.last_strategy}, {side.value} to move)")
    elif cmd == "stats":
        stats, score = session.stats()
        print(f"White: {stats.white}  Black: {stats.black}  Balance: {stats.balance}")
        print(f"Holding: {stats.holding}  Blocked: {stats.blocked}")
        for key, count in sorted(stats.by_key.items()):
            print(f"  {key}: {count}")
        print(f"Score: {score:.1f}")
    elif cmd == "sim":
        run_simulation(session)
    elif cmd == "stop":
        if not session.simulator.stop():
            print("Simulation is not running.")
    elif cmd == "rewind":
        session.simulator.reset()
        print(pretty_print(session.board))
    elif cmd == "suggest":
        result = session.suggest()
        if result.success:
            print(pretty_print(session.board))
            print(f"Suggested placement scores {result.score:.1f} ({result.successful_trials}/{result.trials} trials)")
        elif result.reason == "empty":
            print("No pieces in the holding area.")
        else:
            print("No trial could place every piece.")
    elif cmd == "revert":
        if not session.revert_suggestion():
            print("Nothing to revert.")
    else:
        print(f"Unknown command: {cmd} (h for help)")
    return True


def _telemetry_from(value: Optional[str]) -> Optional[TelemetrySink]:
    raw = value if value is not None else os.environ.get(TELEMETRY_ENV, "")
    endpoint = parse_host_port(raw) if raw else None
    if endpoint is None:
        return None
    return ThreadedTCPSink(*endpoint)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Backpack Battles chess board scoring tool")
    parser.add_argument("--max-slide", type=int, default=MAX_SLIDE, help=f"slide range (default: {MAX_SLIDE})")
    parser.add_argument("--depth", type=int, default=MAX_DEPTH, help=f"exhaustive search depth (default: {MAX_DEPTH})")
    parser.add_argument("--playouts", type=int, default=PLAYOUTS, help=f"Monte Carlo playouts (default: {PLAYOUTS})")
    parser.add_argument(
        "--trials",
        type=int,
        default=PLACEMENT_TRIALS,
        help=f"placement trials per suggestion (default: {PLACEMENT_TRIALS})",
    )
    parser.add_argument(
        "--delay-ms",
        type=int,
        default=STEP_DELAY_MS,
        help=f"pause between simulated plies (default: {STEP_DELAY_MS})",
    )
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--telemetry", default=None, help=f"host:port for JSONL telemetry (or ${TELEMETRY_ENV})")
    parser.add_argument("--verbose", "-v", action="store_true", help="enable debug-level logging")
    args = parser.parse_args(argv)

    if args.max_slide < 1:
        print("--max-slide must be at least 1")
        return 2

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    sink = _telemetry_from(args.telemetry)
    session = Session(
        max_slide=args.max_slide,
        max_depth=args.depth,
        playouts=args.playouts,
        trials=args.trials,
        delay_ms=args.delay_ms,
        seed=args.seed,
        telemetry_sink=sink,
    )
    print("Backpack Battles board tool. Type h for help.")
    try:
        while True:
            line = read_command("> ")
            try:
                if not handle_command(session, line):
                    return 0
            except ValueError as exc:
                print(str(exc))
    finally:
        if sink is not None:
            sink.close()


if __name__ == "__main__":
    raise SystemExit(main())
