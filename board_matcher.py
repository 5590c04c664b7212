"""
Observation matching for Genius Square boards.

An observation is a mapping from (row, col) to CellState, produced by the
frame classifier or parsed from board text. It may be stale, partial or
outright wrong; nothing in this module rejects it. Scoring compares the
observed piece positions against every legal tiling and reports the best fit:

- A piece counts as correct only if its observed cells are exactly the cells
  it occupies in the tiling (no partial credit).
- The tiling that explains the most observed pieces wins. The choice is made
  fresh on every call, so the count can go down between frames even when no
  piece moved.

Board text format (one row per line):
    '.'  empty cell
    '#'  blocker
    '0'-'9'  cell occupied by that piece id
"""

from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union
import logging

import yaml

from genius_config import CELL_CHARS, GRID_SIZE, CellKind
from solve_genius import Coord, Tiling

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellState:
    """Observed state of one board cell."""
    kind: CellKind = "empty"
    piece_id: Optional[int] = None

    @classmethod
    def occupied(cls, piece_id: int) -> "CellState":
        return cls(kind="piece", piece_id=piece_id)

    @property
    def is_blocker(self) -> bool:
        return self.kind == "blocker"

    @property
    def is_piece(self) -> bool:
        return self.kind == "piece"

    def to_char(self) -> str:
        if self.kind == "piece":
            if isinstance(self.piece_id, int) and 0 <= self.piece_id <= 9:
                return str(self.piece_id)
            return "?"
        return CELL_CHARS[self.kind]


EMPTY = CellState("empty")
BLOCKER = CellState("blocker")

Observation = Mapping[Coord, CellState]
GridState = Sequence[Sequence[CellState]]


@dataclass
class MatchResult:
    """Best-fit comparison of one observation against a tiling list."""
    correct: int
    tiling_index: Optional[int] = None
    matched_piece_ids: Tuple[int, ...] = ()

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "correct": self.correct,
            "tiling_index": self.tiling_index,
            "matched_piece_ids": list(self.matched_piece_ids),
        }


# =============================================================================
# Board text
# =============================================================================

def parse_board_ascii(text: str, size: int = GRID_SIZE) -> Dict[Coord, CellState]:
    lines = [line.strip() for line in text.splitlines() if line.strip() != ""]
    if len(lines) != size:
        raise ValueError(f"Board must have {size} rows, got {len(lines)}")

    observed: Dict[Coord, CellState] = {}
    for r, line in enumerate(lines):
        if len(line) != size:
            raise ValueError(f"Row {r} must have {size} cells, got {len(line)}")
        for c, ch in enumerate(line):
            if ch == CELL_CHARS["empty"]:
                observed[(r, c)] = EMPTY
            elif ch == CELL_CHARS["blocker"]:
                observed[(r, c)] = BLOCKER
            elif ch.isdigit():
                observed[(r, c)] = CellState.occupied(int(ch))
            else:
                raise ValueError(f"Invalid char at ({r},{c}): '{ch}' (use '.', '#' or a digit)")

    return observed


def render_board(observed: Observation, size: int = GRID_SIZE) -> str:
    rows = []
    for r in range(size):
        rows.append("".join(observed.get((r, c), EMPTY).to_char() for c in range(size)))
    return "\n".join(rows)


def grid_to_observation(grid: GridState) -> Dict[Coord, CellState]:
    """Flatten a row-major 2D grid of CellState into an observation mapping."""
    return {
        (r, c): state
        for r, row in enumerate(grid)
        for c, state in enumerate(row)
    }


def as_observation(board: Union[Observation, GridState]) -> Observation:
    if isinstance(board, Mapping):
        return board
    return grid_to_observation(board)


def load_board_file(path: Union[str, Path], size: int = GRID_SIZE) -> Dict[Coord, CellState]:
    """
    Load a board description from YAML.

    Expected layout:
        board:
          grid: |
            ......
            .#....

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If board.grid is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        logger.error(f"Board file not found: {path}")
        raise FileNotFoundError(f"Board file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    board = data.get("board") if isinstance(data, dict) else None
    if not isinstance(board, dict) or "grid" not in board:
        raise ValueError(f"{path}: missing required field board.grid")

    return parse_board_ascii(str(board["grid"]), size=size)


# =============================================================================
# Observation queries
# =============================================================================

def blockers_of(observed: Observation) -> FrozenSet[Coord]:
    return frozenset(coord for coord, state in observed.items() if state.is_blocker)


def observed_pieces(observed: Observation) -> Dict[int, FrozenSet[Coord]]:
    """Group observed piece cells by piece id. Shapes are not validated."""
    groups: Dict[int, set] = defaultdict(set)
    for coord, state in observed.items():
        if state.is_piece:
            groups[state.piece_id].add(coord)
    return {pid: frozenset(cells) for pid, cells in groups.items()}


# =============================================================================
# Scoring
# =============================================================================

def matching_pieces(tiling: Tiling, pieces: Mapping[int, FrozenSet[Coord]]) -> List[int]:
    """Piece ids whose observed cells equal their placement in this tiling."""
    placed = {p.piece_id: p.cells for p in tiling}
    return sorted(
        pid for pid, cells in pieces.items()
        if cells and pid in placed and placed[pid] == cells
    )


def best_match(tilings: Sequence[Tiling], observed: Observation) -> MatchResult:
    """
    Find the tiling that agrees with the most observed pieces.

    Ties keep the earliest tiling in enumeration order.

    Args:
        tilings: All legal tilings for the current blocker set
        observed: Cell states as currently observed

    Returns:
        MatchResult with the best count, the index of the winning tiling
        (None when there are no tilings) and the matched piece ids
    """
    if not tilings:
        return MatchResult(correct=0)

    pieces = observed_pieces(observed)
    best = MatchResult(correct=0, tiling_index=0)

    for idx, tiling in enumerate(tilings):
        matched = matching_pieces(tiling, pieces)
        if len(matched) > best.correct:
            best = MatchResult(correct=len(matched), tiling_index=idx, matched_piece_ids=tuple(matched))
            if best.correct == len(pieces):
                break

    return best


def score_observation(tilings: Sequence[Tiling], observed: Observation) -> int:
    """Number of observed pieces that are correct in the best-fitting tiling."""
    return best_match(tilings, observed).correct
