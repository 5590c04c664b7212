"""
Unit tests for observation parsing and scoring.

Covers:
- parse_board_ascii / render_board / load_board_file: board text and YAML
- observed_pieces / blockers_of: observation queries
- score_observation / best_match: best-fit exact matching
"""

import pytest

from board_matcher import (
    BLOCKER,
    EMPTY,
    CellState,
    MatchResult,
    best_match,
    blockers_of,
    grid_to_observation,
    load_board_file,
    observed_pieces,
    parse_board_ascii,
    render_board,
    score_observation,
)
from solve_genius import Placement, find_all_tilings

from conftest import FULL_TILING_BOARD, POCKET_BOARD_SOLVED


def empty_observation(size=6):
    return {(r, c): EMPTY for r in range(size) for c in range(size)}


def observe(tiling, piece_ids, blockers=()):
    """Observation reporting only the given pieces of a tiling."""
    observed = empty_observation()
    for cell in blockers:
        observed[cell] = BLOCKER
    for placement in tiling:
        if placement.piece_id in piece_ids:
            for cell in placement.cells:
                observed[cell] = CellState.occupied(placement.piece_id)
    return observed


# ============================================================================
# Board text
# ============================================================================

class TestParseBoardAscii:

    def test_parses_all_cell_kinds(self):
        observed = parse_board_ascii(FULL_TILING_BOARD)
        assert len(observed) == 36
        assert observed[(0, 0)] == CellState.occupied(7)
        assert observed[(1, 1)] == BLOCKER
        assert observed[(3, 1)] == CellState.occupied(0)

    def test_empty_cells(self):
        observed = parse_board_ascii("\n".join(["......"] * 6))
        assert all(state == EMPTY for state in observed.values())

    def test_wrong_row_count(self):
        with pytest.raises(ValueError, match="rows"):
            parse_board_ascii("......\n......")

    def test_wrong_row_length(self):
        text = "\n".join(["......"] * 5 + ["....."])
        with pytest.raises(ValueError, match="Row 5"):
            parse_board_ascii(text)

    def test_invalid_char(self):
        text = "\n".join(["......"] * 5 + ["..x..."])
        with pytest.raises(ValueError, match=r"\(5,2\)"):
            parse_board_ascii(text)

    def test_render_round_trip(self):
        observed = parse_board_ascii(POCKET_BOARD_SOLVED)
        expected = "\n".join(line for line in POCKET_BOARD_SOLVED.splitlines() if line.strip())
        assert render_board(observed) == expected

    def test_render_unknown_piece_id(self):
        observed = empty_observation(2)
        observed[(0, 0)] = CellState.occupied(42)
        assert render_board(observed, size=2) == "?.\n.."


class TestLoadBoardFile:

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "board.yaml"
        path.write_text("board:\n  grid: |\n" + "".join(
            f"    {line}\n" for line in POCKET_BOARD_SOLVED.split() if line
        ))
        observed = load_board_file(path)
        assert observed == parse_board_ascii(POCKET_BOARD_SOLVED)

    def test_missing_grid(self, tmp_path):
        path = tmp_path / "board.yaml"
        path.write_text("board:\n  size: 6\n")
        with pytest.raises(ValueError, match="board.grid"):
            load_board_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_board_file(tmp_path / "nope.yaml")


# ============================================================================
# Observation queries
# ============================================================================

class TestObservationQueries:

    def test_blockers_of(self, full_board):
        assert blockers_of(full_board) == {(1, 1), (2, 5), (4, 5), (5, 0), (5, 1)}

    def test_observed_pieces_groups_by_id(self, full_board):
        pieces = observed_pieces(full_board)
        assert sorted(pieces) == list(range(9))
        assert pieces[1] == {(0, 4), (0, 5)}

    def test_grid_to_observation(self):
        grid = [[EMPTY, BLOCKER], [CellState.occupied(3), EMPTY]]
        observed = grid_to_observation(grid)
        assert observed[(0, 1)] == BLOCKER
        assert observed[(1, 0)].piece_id == 3


# ============================================================================
# Scoring
# ============================================================================

class TestScoreObservation:

    def test_single_piece_reported(self, full_tiling, full_blockers):
        observed = observe(full_tiling, {0}, full_blockers)
        assert score_observation([full_tiling], observed) == 1

    def test_all_pieces_reported(self, full_tiling, full_board):
        assert score_observation([full_tiling], full_board) == 9

    def test_subset_gets_no_credit(self, full_tiling):
        observed = empty_observation()
        observed[(0, 4)] = CellState.occupied(1)  # piece 1 really covers (0,4),(0,5)
        assert score_observation([full_tiling], observed) == 0

    def test_extra_cells_get_no_credit(self, full_tiling):
        observed = observe(full_tiling, {1})
        observed[(1, 4)] = CellState.occupied(1)
        assert score_observation([full_tiling], observed) == 0

    def test_no_pieces_observed(self, full_tiling, full_blockers):
        observed = observe(full_tiling, set(), full_blockers)
        assert score_observation([full_tiling], observed) == 0

    def test_no_tilings(self, full_board):
        assert score_observation([], full_board) == 0

    def test_unknown_piece_ids_never_match(self, full_tiling):
        observed = observe(full_tiling, {0})
        observed[(5, 0)] = CellState.occupied(12)
        observed[(5, 1)] = CellState.occupied(-3)
        assert score_observation([full_tiling], observed) == 1

    def test_is_repeatable(self, full_tiling, full_board):
        assert score_observation([full_tiling], full_board) == score_observation([full_tiling], full_board)


class TestBestMatch:

    def test_picks_tiling_explaining_most_pieces(self, pocket_catalog, pocket_blockers):
        tilings = find_all_tilings(pocket_blockers, catalog=pocket_catalog)
        observed = parse_board_ascii(POCKET_BOARD_SOLVED)

        result = best_match(tilings, observed)
        assert result == MatchResult(correct=3, tiling_index=0, matched_piece_ids=(0, 1, 2))

    def test_best_fit_can_move_between_tilings(self, pocket_catalog, pocket_blockers):
        tilings = find_all_tilings(pocket_blockers, catalog=pocket_catalog)

        # only the domino, at the bottom right: only tiling 2 has it there
        frame = empty_observation()
        frame[(1, 1)] = frame[(1, 2)] = CellState.occupied(1)
        assert best_match(tilings, frame).tiling_index == 2

        # the monomino alone at (0,0) is explained by tiling 0
        frame = empty_observation()
        frame[(0, 0)] = CellState.occupied(0)
        assert best_match(tilings, frame).tiling_index == 0

    def test_ties_keep_first_tiling(self, pocket_catalog, pocket_blockers):
        tilings = find_all_tilings(pocket_blockers, catalog=pocket_catalog)

        # the tromino on row 1 is shared by tilings 0 and 1
        frame = empty_observation()
        for c in range(3):
            frame[(1, c)] = CellState.occupied(2)
        result = best_match(tilings, frame)
        assert result.correct == 1
        assert result.tiling_index == 0

    def test_nothing_observed_keeps_first_tiling(self, full_tiling):
        result = best_match([full_tiling], empty_observation())
        assert result == MatchResult(correct=0, tiling_index=0)

    def test_no_tilings_has_no_index(self):
        assert best_match([], empty_observation()).tiling_index is None

    def test_piece_counts_once_per_tiling(self):
        tiling = (Placement(piece_id=0, cells=frozenset({(0, 0)})),)
        observed = {(0, 0): CellState.occupied(0), (0, 1): EMPTY}
        assert best_match([tiling, tiling], observed).correct == 1

    def test_to_dict(self):
        result = MatchResult(correct=2, tiling_index=4, matched_piece_ids=(1, 3))
        assert result.to_dict() == {"correct": 2, "tiling_index": 4, "matched_piece_ids": [1, 3]}
