# solve_genius.py
from __future__ import annotations

import logging
import numbers
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

import numpy as np

from genius_config import CELL_CHARS, GRID_SIZE
from genius_pieces import CATALOG, Coord, PieceCatalog, PieceShape

logger = logging.getLogger(__name__)

FREE = -1
BLOCKED = -2


class SolveCancelled(RuntimeError):
    """Raised when a caller-supplied cancel check stops a solve."""


@dataclass(frozen=True)
class Placement:
    piece_id: int
    cells: FrozenSet[Coord]
    # where the solver put it; not part of equality
    orientation: int = field(default=0, compare=False)
    origin: Coord = field(default=(0, 0), compare=False)


Tiling = Tuple[Placement, ...]


def normalize_blockers(blockers: Iterable[Coord], size: int = GRID_SIZE) -> FrozenSet[Coord]:
    out = set()
    for cell in blockers:
        if isinstance(cell, (str, bytes)):
            raise ValueError(f"Blocker must be a (row, col) pair, got {cell!r}")
        try:
            values = tuple(cell)
        except TypeError:
            raise ValueError(f"Blocker must be a (row, col) pair, got {cell!r}")
        if len(values) != 2 or not all(
            isinstance(v, numbers.Integral) and not isinstance(v, bool) for v in values
        ):
            raise ValueError(f"Blocker must be a pair of integers, got {cell!r}")
        r, c = int(values[0]), int(values[1])
        if not (0 <= r < size and 0 <= c < size):
            raise ValueError(f"Blocker ({r},{c}) is outside the {size}x{size} grid")
        out.add((r, c))
    return frozenset(out)


def fit_shape(board: List[List[int]], shape: PieceShape, start_row: int, start_col: int) -> Optional[List[Coord]]:
    """Absolute cells of shape at the origin, or None if out of bounds or not free."""
    size = len(board)
    cells = []
    for dr, dc in shape.cells:
        r = start_row + dr
        c = start_col + dc
        if r >= size or c >= size:
            return None
        if board[r][c] != FREE:
            return None
        cells.append((r, c))
    return cells


def find_all_tilings(
    blockers: Iterable[Coord],
    catalog: PieceCatalog = CATALOG,
    size: int = GRID_SIZE,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> List[Tiling]:
    """
    Enumerate every way to place all catalog pieces around the blockers.

    Pieces are placed in id order. For each piece the orientations are tried
    in catalog order and, within an orientation, every origin on the grid in
    row-major order. All tilings are returned, in that enumeration order;
    an empty list means the blockers admit none.

    Args:
        blockers: Blocked (row, col) cells; duplicates are ignored
        catalog: Pieces to place
        size: Grid side length
        should_cancel: Optional check polled between placement attempts;
            returning True aborts the solve with SolveCancelled

    Raises:
        ValueError: If a blocker is not a coordinate on the grid
        SolveCancelled: If should_cancel returned True
    """
    blocked = normalize_blockers(blockers, size)
    board = [[FREE] * size for _ in range(size)]
    for r, c in blocked:
        board[r][c] = BLOCKED

    piece_count = len(catalog)
    current: List[Placement] = []
    solutions: List[Tiling] = []

    def backtrack(piece_id: int) -> None:
        if piece_id == piece_count:
            solutions.append(tuple(current))
            return

        for orientation, shape in enumerate(catalog.orientations_of(piece_id)):
            for start_row in range(size):
                for start_col in range(size):
                    if should_cancel is not None and should_cancel():
                        raise SolveCancelled(f"Solve cancelled at piece {piece_id}")

                    cells = fit_shape(board, shape, start_row, start_col)
                    if cells is None:
                        continue

                    # place
                    for r, c in cells:
                        board[r][c] = piece_id
                    current.append(Placement(
                        piece_id=piece_id,
                        cells=frozenset(cells),
                        orientation=orientation,
                        origin=(start_row, start_col),
                    ))

                    backtrack(piece_id + 1)

                    # undo
                    current.pop()
                    for r, c in cells:
                        board[r][c] = FREE

    start = time.time()
    logger.info(f"Solving {size}x{size} board: {len(blocked)} blockers, {piece_count} pieces")
    backtrack(0)
    logger.info(f"Found {len(solutions)} tilings in {int((time.time() - start) * 1000)}ms")
    return solutions


def tiling_to_grid(tiling: Tiling, blockers: Iterable[Coord] = (), size: int = GRID_SIZE) -> np.ndarray:
    """Label matrix: FREE, BLOCKED, or the piece id covering each cell."""
    grid = np.full((size, size), FREE, dtype=np.int16)
    for r, c in blockers:
        grid[r, c] = BLOCKED
    for placement in tiling:
        for r, c in placement.cells:
            grid[r, c] = placement.piece_id
    return grid


def validate_tiling(
    tiling: Tiling,
    blockers: Iterable[Coord] = (),
    catalog: PieceCatalog = CATALOG,
    size: int = GRID_SIZE,
) -> List[str]:
    """List every rule the tiling breaks; empty means it is a legal tiling."""
    violations: List[str] = []
    blocked = frozenset(blockers)

    ids = [p.piece_id for p in tiling]
    if ids != list(catalog.piece_ids):
        violations.append(f"Expected piece ids {list(catalog.piece_ids)}, got {ids}")

    seen: dict = {}
    for placement in tiling:
        pid = placement.piece_id
        for r, c in sorted(placement.cells):
            if not (0 <= r < size and 0 <= c < size):
                violations.append(f"Piece {pid} cell ({r},{c}) is off the grid")
            if (r, c) in blocked:
                violations.append(f"Piece {pid} covers blocker ({r},{c})")
            if (r, c) in seen:
                violations.append(f"Pieces {seen[(r, c)]} and {pid} overlap at ({r},{c})")
            seen[(r, c)] = pid

        if pid in catalog.piece_ids and placement.cells:
            min_r = min(r for r, _ in placement.cells)
            min_c = min(c for _, c in placement.cells)
            # compare against shapes anchored on their own bounding box
            relative = frozenset((r - min_r, c - min_c) for r, c in placement.cells)
            anchored = set()
            for shape in catalog.orientations_of(pid):
                sr = min(r for r, _ in shape.cells)
                sc = min(c for _, c in shape.cells)
                anchored.add(frozenset((r - sr, c - sc) for r, c in shape.cells))
            if relative not in anchored:
                violations.append(f"Piece {pid} cells {sorted(placement.cells)} match no orientation")

    return violations


def render_tiling(tiling: Tiling, blockers: Iterable[Coord] = (), size: int = GRID_SIZE) -> str:
    grid = tiling_to_grid(tiling, blockers, size)
    out_lines = []
    for row in grid:
        row_chars = []
        for v in row:
            if v == BLOCKED:
                row_chars.append(CELL_CHARS["blocker"])
            elif v == FREE:
                row_chars.append(CELL_CHARS["empty"])
            else:
                row_chars.append(str(int(v)))
        out_lines.append("".join(row_chars))
    return "\n".join(out_lines)


def main(argv: Optional[List[str]] = None) -> int:
    import argparse

    from board_evaluator import BoardEvaluator
    from board_matcher import load_board_file, observed_pieces

    ap = argparse.ArgumentParser(description="Enumerate Genius Square tilings and score a board")
    ap.add_argument("board_file", help="Path to board YAML (board.grid)")
    ap.add_argument("--show", type=int, default=1, help="Number of tilings to print")
    ap.add_argument("--verbose", "-v", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        observed = load_board_file(args.board_file)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    evaluator = BoardEvaluator()
    evaluator.update_grid_state(observed)
    blockers = evaluator.blockers
    tilings = evaluator.tilings

    if not tilings:
        print(f"NO TILING for {len(blockers)} blockers (pieces cover {CATALOG.total_area} cells).")
        return 0

    print(f"{len(tilings)} tilings.\n")
    for idx, tiling in enumerate(tilings[:max(args.show, 0)]):
        print(f"Tiling {idx}:")
        print(render_tiling(tiling, blockers))
        print()

    if observed_pieces(observed):
        print(f"{evaluator.status_text()} (best fit: tiling {evaluator.last_match.tiling_index})")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
