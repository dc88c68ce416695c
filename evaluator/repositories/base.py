"""
Base Repository - Evaluator Scoring Engine
evaluator/repositories/base.py

Persistence contract for score and consensus entries of one evaluation.

The scoring core defines entity shapes and invariants; a concrete repository
supplies durable storage. Queries must return every stored version so the
ledger's "retain prior versions" guarantee holds.
"""
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Generator, List, Optional, Tuple

from evaluator.models.enumerations import ConsensusState
from evaluator.models.score import ConsensusEntry, ConsensusSession, ScoreEntry

Pair = Tuple[str, str]


@dataclass
class LedgerSnapshot:
    """Consistent read view: current score versions and current consensus per pair."""
    scores: Dict[Pair, List[ScoreEntry]] = field(default_factory=dict)
    consensus: Dict[Pair, ConsensusEntry] = field(default_factory=dict)
    write_version: int = 0

    def current_scores(self, vendor_id: str, requirement_id: str) -> List[ScoreEntry]:
        return self.scores.get((vendor_id, requirement_id), [])

    def current_consensus(self, vendor_id: str, requirement_id: str) -> Optional[ConsensusEntry]:
        return self.consensus.get((vendor_id, requirement_id))


def current_versions(entries: List[ScoreEntry]) -> List[ScoreEntry]:
    """Reduce a version history to the latest version per key, ordered by evaluator."""
    latest: Dict[tuple, ScoreEntry] = {}
    for entry in entries:
        held = latest.get(entry.key)
        if held is None or entry.version > held.version:
            latest[entry.key] = entry
    return sorted(
        latest.values(),
        key=lambda e: (e.evaluator_id, e.stakeholder_area_id or "", e.id),
    )


class BaseScoreRepository(ABC):
    """Storage for ScoreEntry / ConsensusEntry / ConsensusSession records."""

    def __init__(self, evaluation_id: str):
        self.evaluation_id = evaluation_id
        self._locks_guard = threading.Lock()
        self._pair_locks: Dict[Pair, threading.RLock] = defaultdict(threading.RLock)

    @contextmanager
    def pair_lock(self, vendor_id: str, requirement_id: str) -> Generator[None, None, None]:
        """Serialise writes that touch one (vendor, requirement) pair."""
        with self._locks_guard:
            lock = self._pair_locks[(vendor_id, requirement_id)]
        with lock:
            yield

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    def append_score(self, entry: ScoreEntry) -> ScoreEntry:
        """Append a score version."""

    @abstractmethod
    def append_consensus(self, entry: ConsensusEntry) -> ConsensusEntry:
        """Append a consensus entry and link the score entries it was derived from."""

    @abstractmethod
    def save_session(self, session: ConsensusSession) -> ConsensusSession:
        """Store the workflow state of a pair."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @abstractmethod
    def query_by_vendor_requirement(
        self, vendor_id: str, requirement_id: str
    ) -> Tuple[List[ScoreEntry], List[ConsensusEntry]]:
        """All score versions and all consensus entries of a pair, oldest first."""

    @abstractmethod
    def get_session(self, vendor_id: str, requirement_id: str) -> Optional[ConsensusSession]:
        """Workflow state of a pair, or None if never opened."""

    @abstractmethod
    def list_scores(
        self,
        vendor_id: Optional[str] = None,
        evaluator_id: Optional[str] = None,
    ) -> List[ScoreEntry]:
        """All score versions, optionally filtered."""

    @abstractmethod
    def snapshot(self) -> LedgerSnapshot:
        """Consistent view of current scores and current consensus."""

    def write_version(self) -> int:
        """Counter bumped by every write; derived results are valid for one value."""
        return self.snapshot().write_version

    def consensus_state(self, vendor_id: str, requirement_id: str) -> ConsensusState:
        session = self.get_session(vendor_id, requirement_id)
        return session.state if session else ConsensusState.INDIVIDUAL
