"""
In-Memory Repository - Evaluator Scoring Engine
evaluator/repositories/memory_repository.py

Thread-safe, process-local implementation of BaseScoreRepository. Used by
tests and by callers that keep ledger state in memory between requests.
"""
import logging
import threading
from typing import Dict, List, Optional, Tuple

from evaluator.models.score import ConsensusEntry, ConsensusSession, ScoreEntry
from evaluator.repositories.base import (
    BaseScoreRepository,
    LedgerSnapshot,
    Pair,
    current_versions,
)

logger = logging.getLogger(__name__)


class InMemoryScoreRepository(BaseScoreRepository):
    """Append-only lists guarded by a single re-entrant lock."""

    def __init__(self, evaluation_id: str):
        super().__init__(evaluation_id)
        self._lock = threading.RLock()
        self._scores: List[ScoreEntry] = []
        self._consensus: List[ConsensusEntry] = []
        self._sessions: Dict[Pair, ConsensusSession] = {}
        # score_id -> consensus_id (consensus source links)
        self._superseded_by: Dict[str, str] = {}
        self._write_version = 0

    def _with_link(self, entry: ScoreEntry) -> ScoreEntry:
        consensus_id = self._superseded_by.get(entry.id)
        if consensus_id is None or entry.superseded_by == consensus_id:
            return entry
        return entry.model_copy(update={"superseded_by": consensus_id})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append_score(self, entry: ScoreEntry) -> ScoreEntry:
        with self._lock:
            self._scores.append(entry)
            self._write_version += 1
        logger.debug(
            "score_appended",
            extra={"score_id": entry.id, "evaluation_id": self.evaluation_id},
        )
        return entry

    def append_consensus(self, entry: ConsensusEntry) -> ConsensusEntry:
        with self._lock:
            self._consensus.append(entry)
            for score_id in entry.derived_from:
                self._superseded_by[score_id] = entry.id
            self._write_version += 1
        logger.debug(
            "consensus_appended",
            extra={"consensus_id": entry.id, "evaluation_id": self.evaluation_id},
        )
        return entry

    def save_session(self, session: ConsensusSession) -> ConsensusSession:
        with self._lock:
            self._sessions[(session.vendor_id, session.requirement_id)] = session
            self._write_version += 1
        return session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query_by_vendor_requirement(
        self, vendor_id: str, requirement_id: str
    ) -> Tuple[List[ScoreEntry], List[ConsensusEntry]]:
        with self._lock:
            scores = [
                self._with_link(s) for s in self._scores
                if s.vendor_id == vendor_id and s.requirement_id == requirement_id
            ]
            consensus = [
                c for c in self._consensus
                if c.vendor_id == vendor_id and c.requirement_id == requirement_id
            ]
        return scores, consensus

    def get_session(self, vendor_id: str, requirement_id: str) -> Optional[ConsensusSession]:
        with self._lock:
            return self._sessions.get((vendor_id, requirement_id))

    def list_scores(
        self,
        vendor_id: Optional[str] = None,
        evaluator_id: Optional[str] = None,
    ) -> List[ScoreEntry]:
        with self._lock:
            return [
                self._with_link(s) for s in self._scores
                if (vendor_id is None or s.vendor_id == vendor_id)
                and (evaluator_id is None or s.evaluator_id == evaluator_id)
            ]

    def write_version(self) -> int:
        with self._lock:
            return self._write_version

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            by_pair: Dict[Pair, List[ScoreEntry]] = {}
            for entry in self._scores:
                by_pair.setdefault(entry.pair, []).append(self._with_link(entry))
            consensus: Dict[Pair, ConsensusEntry] = {}
            for entry in self._consensus:
                # Appended in order, so the last one per pair is current
                consensus[entry.pair] = entry
            write_version = self._write_version

        return LedgerSnapshot(
            scores={pair: current_versions(entries) for pair, entries in by_pair.items()},
            consensus=consensus,
            write_version=write_version,
        )
