# genius_pieces.py
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Sequence, Tuple

Coord = Tuple[int, int]  # (row, col)


class InvalidPieceId(ValueError):
    """Raised when a piece id outside the catalog is looked up."""


@dataclass(frozen=True)
class PieceShape:
    """One fixed orientation of a piece, as offsets from its top-left origin."""
    cells: Tuple[Coord, ...]

    def __post_init__(self):
        if not self.cells:
            raise ValueError("PieceShape needs at least one cell")
        if len(set(self.cells)) != len(self.cells):
            raise ValueError(f"Duplicate offsets in shape: {self.cells}")
        for r, c in self.cells:
            if r < 0 or c < 0:
                raise ValueError(f"Offset ({r},{c}) is not normalized (must be >= 0)")

    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def cell_set(self) -> FrozenSet[Coord]:
        return frozenset(self.cells)


# Orientations are listed explicitly (rotations only, no reflections).
# Order matters: the solver tries them in this order.
GENIUS_PIECES: Tuple[Tuple[Tuple[Coord, ...], ...], ...] = (
    # 0: monomino
    (
        ((0, 0),),
    ),
    # 1: domino
    (
        ((0, 0), (0, 1)),
        ((0, 0), (1, 0)),
    ),
    # 2: straight tromino
    (
        ((0, 0), (0, 1), (0, 2)),
        ((0, 0), (1, 0), (2, 0)),
    ),
    # 3: L-tromino
    (
        ((0, 0), (1, 0), (1, 1)),
        ((0, 0), (0, 1), (1, 0)),
        ((0, 0), (0, 1), (1, 1)),
        ((0, 1), (1, 0), (1, 1)),
    ),
    # 4: T-tetromino
    (
        ((0, 0), (0, 1), (0, 2), (1, 1)),
        ((0, 1), (1, 0), (1, 1), (2, 1)),
        ((0, 1), (1, 0), (1, 1), (1, 2)),
        ((0, 0), (1, 0), (2, 0), (1, 1)),
    ),
    # 5: L-tetromino
    (
        ((0, 0), (1, 0), (2, 0), (2, 1)),
        ((0, 0), (0, 1), (0, 2), (1, 0)),
        ((0, 0), (0, 1), (1, 1), (2, 1)),
        ((0, 2), (1, 0), (1, 1), (1, 2)),
    ),
    # 6: S/Z-tetromino
    (
        ((0, 0), (0, 1), (1, 1), (1, 2)),
        ((0, 1), (1, 0), (1, 1), (2, 0)),
    ),
    # 7: L-pentomino
    (
        ((0, 0), (1, 0), (2, 0), (3, 0), (3, 1)),
        ((0, 0), (0, 1), (0, 2), (0, 3), (1, 0)),
        ((0, 0), (0, 1), (1, 1), (2, 1), (3, 1)),
        ((0, 3), (1, 0), (1, 1), (1, 2), (1, 3)),
    ),
    # 8: plus pentomino
    (
        ((0, 1), (1, 0), (1, 1), (1, 2), (2, 1)),
    ),
)


class PieceCatalog:
    """
    Immutable table of pieces and their orientations.

    Piece ids are the positions in the table, so the solver places pieces
    in id order.
    """

    def __init__(self, pieces: Sequence[Sequence[Sequence[Coord]]]):
        table = []
        for pid, orientations in enumerate(pieces):
            shapes = tuple(
                PieceShape(tuple((int(r), int(c)) for r, c in cells))
                for cells in orientations
            )
            if not shapes:
                raise ValueError(f"Piece {pid} has no orientations")
            if len({s.size for s in shapes}) != 1:
                raise ValueError(f"Piece {pid} orientations differ in size")
            table.append(shapes)
        self._pieces: Tuple[Tuple[PieceShape, ...], ...] = tuple(table)

    def __len__(self) -> int:
        return len(self._pieces)

    def __repr__(self) -> str:
        return f"PieceCatalog(pieces={len(self._pieces)}, area={self.total_area})"

    @property
    def piece_ids(self) -> range:
        return range(len(self._pieces))

    @property
    def total_area(self) -> int:
        return sum(shapes[0].size for shapes in self._pieces)

    def orientations_of(self, piece_id: int) -> Tuple[PieceShape, ...]:
        if isinstance(piece_id, bool) or not isinstance(piece_id, int):
            raise InvalidPieceId(f"Piece id must be an int, got {piece_id!r}")
        if not 0 <= piece_id < len(self._pieces):
            raise InvalidPieceId(
                f"Unknown piece id {piece_id} (valid: 0..{len(self._pieces) - 1})"
            )
        return self._pieces[piece_id]

    def size_of(self, piece_id: int) -> int:
        return self.orientations_of(piece_id)[0].size


CATALOG = PieceCatalog(GENIUS_PIECES)
