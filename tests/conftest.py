"""
Shared fixtures: hand-checked boards and small catalogs.

The full nine-piece catalog only has tilings on boards with at most five
blockers, and the brute-force search on such boards is far too slow for a
unit test. Enumeration behaviour is therefore checked on small catalogs;
the full catalog is exercised through a hand-built tiling and through boards
blocked heavily enough that the search finishes at once.
"""

import sys
import os

import pytest

# Add parent directory to path to import project modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from board_matcher import blockers_of, observed_pieces, parse_board_ascii
from genius_pieces import GENIUS_PIECES, PieceCatalog
from solve_genius import Placement


# A legal tiling of the full catalog with five blockers.
FULL_TILING_BOARD = """
777711
7#8444
28884#
208555
26653#
##6633
"""

# Pieces 0-2 only, in the 2x3 pocket left by 30 blockers.
POCKET_BOARD_EMPTY = """
...###
...###
######
######
######
######
"""

POCKET_BOARD_SOLVED = """
011###
222###
######
######
######
######
"""


def tiling_from_board(text: str):
    """Build a Tiling (ordered by piece id) from board text."""
    observed = parse_board_ascii(text)
    pieces = observed_pieces(observed)
    return tuple(Placement(piece_id=pid, cells=pieces[pid]) for pid in sorted(pieces))


@pytest.fixture
def full_board():
    return parse_board_ascii(FULL_TILING_BOARD)


@pytest.fixture
def full_tiling():
    return tiling_from_board(FULL_TILING_BOARD)


@pytest.fixture
def full_blockers(full_board):
    return blockers_of(full_board)


@pytest.fixture
def mini_catalog():
    """Monomino + domino, for 2x2 boards."""
    return PieceCatalog(GENIUS_PIECES[:2])


@pytest.fixture
def pocket_catalog():
    """Monomino, domino and straight tromino (area 6)."""
    return PieceCatalog(GENIUS_PIECES[:3])


@pytest.fixture
def pocket_blockers():
    return blockers_of(parse_board_ascii(POCKET_BOARD_EMPTY))
