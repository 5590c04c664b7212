"""
Live board evaluation session.

BoardEvaluator sits between the frame classifier and whatever displays the
result. Each analyzed frame is turned into an observation, the blocker set is
read off it, and the observation is scored against the tilings for those
blockers. Tilings are cached and only recomputed when the blocker set changes.

Frames usually arrive far faster than they can be solved, so submit_frame()
drops anything that arrives within ANALYSIS_INTERVAL_S of the last analyzed
frame.

An instance is meant to be driven by a single consumer.
"""

import logging
import time
from typing import Callable, FrozenSet, Iterable, List, Optional, Union

from board_matcher import GridState, MatchResult, Observation, as_observation, best_match, blockers_of
from genius_config import ANALYSIS_INTERVAL_S, GRID_SIZE, NOT_EVALUATED
from genius_pieces import CATALOG, Coord, PieceCatalog
from solve_genius import Tiling, find_all_tilings, normalize_blockers

logger = logging.getLogger(__name__)


class BoardEvaluator:
    """
    Tracks the current blocker set, its tilings, and the latest score.

    Attributes:
        correct_pieces: Latest best-fit count, or NOT_EVALUATED before the
            first frame
        blockers: Blocker set the cached tilings belong to (None until known)
        tilings: Tilings for the current blocker set
        last_match: Full MatchResult of the latest evaluation
    """

    def __init__(
        self,
        catalog: PieceCatalog = CATALOG,
        size: int = GRID_SIZE,
        min_interval: float = ANALYSIS_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.catalog = catalog
        self.size = size
        self.min_interval = min_interval
        self.clock = clock

        self.correct_pieces = NOT_EVALUATED
        self.blockers: Optional[FrozenSet[Coord]] = None
        self.tilings: List[Tiling] = []
        self.last_match: Optional[MatchResult] = None
        self.solve_count = 0
        self._last_analysis: Optional[float] = None

    def set_blockers(self, blockers: Iterable[Coord]) -> List[Tiling]:
        """Use a new blocker set, re-solving only if it changed."""
        blocked = normalize_blockers(blockers, self.size)
        if blocked == self.blockers:
            logger.debug(f"Blocker set unchanged ({len(blocked)} cells), reusing {len(self.tilings)} tilings")
            return self.tilings

        logger.info(f"Blocker set changed: {sorted(blocked)}")
        self.tilings = find_all_tilings(blocked, catalog=self.catalog, size=self.size)
        self.blockers = blocked
        self.solve_count += 1
        return self.tilings

    def update_grid_state(self, board: Union[Observation, GridState]) -> int:
        """Evaluate one observation immediately and return the correct count."""
        observed = as_observation(board)
        self.set_blockers(blockers_of(observed))

        self.last_match = best_match(self.tilings, observed)
        self.correct_pieces = self.last_match.correct
        logger.debug(
            f"Scored frame: {self.correct_pieces}/{len(self.catalog)} correct "
            f"(tiling {self.last_match.tiling_index} of {len(self.tilings)})"
        )
        return self.correct_pieces

    def submit_frame(self, board: Union[Observation, GridState], now: Optional[float] = None) -> Optional[int]:
        """
        Throttled update_grid_state().

        Returns:
            The new correct count, or None if the frame was dropped
        """
        if now is None:
            now = self.clock()

        if self._last_analysis is not None and now - self._last_analysis <= self.min_interval:
            logger.debug(f"Dropping frame ({now - self._last_analysis:.3f}s since last analysis)")
            return None

        correct = self.update_grid_state(board)
        self._last_analysis = now
        return correct

    def status_text(self) -> str:
        if self.correct_pieces == NOT_EVALUATED:
            return "Detecting..."
        return f"{self.correct_pieces}/{len(self.catalog)} pieces correct"
