"""
Score Ledger Tests - Evaluator Scoring Engine
tests/test_score_ledger.py

Score entry validation, evidence enforcement, versioning and concurrent
submissions.
"""

import threading
from decimal import Decimal

import pytest

from evaluator.core.exceptions import (
    EntityNotFoundException,
    EvidenceRequired,
    InvalidScore,
    MissingStakeholderArea,
    ScoreLocked,
)
from evaluator.models.enumerations import (
    ConsensusState,
    MoSCoWPriority,
    ScoreConfidence,
    ScoreStatus,
)
from evaluator.models.evaluation import Requirement, ScaleBounds
from evaluator.scoring.score_ledger import coerce_score
from tests.helpers import EVIDENCE, build_components, make_evaluation


class TestCoerceScore:

    @pytest.mark.parametrize("value", [0, 3, "4", 5.0, Decimal("2")])
    def test_accepts_values_on_scale(self, value):
        assert coerce_score(value, ScaleBounds()) == Decimal(str(value))

    @pytest.mark.parametrize("value", [-1, 6, "5.5", 11])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(InvalidScore):
            coerce_score(value, ScaleBounds())

    @pytest.mark.parametrize("value", ["abc", None, True, float("nan"), float("inf")])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(InvalidScore):
            coerce_score(value, ScaleBounds())

    def test_whole_points_reject_fractions(self):
        with pytest.raises(InvalidScore, match="whole points"):
            coerce_score("2.5", ScaleBounds())

    def test_half_points(self):
        scale = ScaleBounds(half_points=True)
        assert coerce_score("2.5", scale) == Decimal("2.5")
        with pytest.raises(InvalidScore, match="half points"):
            coerce_score("2.25", scale)


class TestEvidenceEnforcement:

    def test_minimum_without_evidence_rejected(self, scoring):
        with pytest.raises(EvidenceRequired):
            scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 0, evidence="")
        assert scoring.repository.list_scores() == []

    def test_mid_scale_without_evidence_accepted(self, scoring):
        entry = scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3, evidence="")
        assert entry.score == Decimal("3")

    @pytest.mark.parametrize("evidence", [None, "", "   \n\t"])
    def test_maximum_needs_real_evidence(self, scoring, evidence):
        with pytest.raises(EvidenceRequired):
            scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 5, evidence=evidence)

    def test_extreme_with_evidence_accepted(self, scoring):
        entry = scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 5, evidence=EVIDENCE)
        assert entry.evidence == EVIDENCE

    def test_extremes_follow_the_scale(self):
        comps = build_components(make_evaluation(scale=ScaleBounds.from_preset("1-10")))
        comps.ledger.submit("eval-1", "vendor-a", "req-f1", 5)
        with pytest.raises(EvidenceRequired):
            comps.ledger.submit("eval-1", "vendor-a", "req-f1", 1)
        with pytest.raises(EvidenceRequired):
            comps.ledger.submit("eval-1", "vendor-a", "req-f1", 10)


class TestEntryChecks:

    def test_unknown_vendor(self, scoring):
        with pytest.raises(EntityNotFoundException) as exc_info:
            scoring.ledger.submit("eval-1", "vendor-z", "req-f1", 3)
        assert exc_info.value.entity_type == "Vendor"

    def test_unknown_requirement(self, scoring):
        with pytest.raises(EntityNotFoundException) as exc_info:
            scoring.ledger.submit("eval-1", "vendor-a", "req-zz", 3)
        assert exc_info.value.entity_type == "Requirement"

    def test_invalid_score_appends_nothing(self, scoring):
        with pytest.raises(InvalidScore):
            scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 7)
        assert scoring.repository.list_scores() == []

    def test_multi_stakeholder_requires_area(self, multi_scoring):
        with pytest.raises(MissingStakeholderArea):
            multi_scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3)

    def test_unknown_area_rejected(self, multi_scoring):
        with pytest.raises(MissingStakeholderArea) as exc_info:
            multi_scoring.ledger.submit(
                "eval-1", "vendor-a", "req-f1", 3, stakeholder_area_id="area-legal"
            )
        assert exc_info.value.stakeholder_area_id == "area-legal"

    def test_multi_stakeholder_with_area(self, multi_scoring):
        entry = multi_scoring.ledger.submit(
            "eval-1", "vendor-a", "req-f1", 3, stakeholder_area_id="area-it",
            confidence=ScoreConfidence.HIGH,
        )
        assert entry.stakeholder_area_id == "area-it"
        assert entry.confidence == ScoreConfidence.HIGH


class TestVersioning:

    def test_resubmission_appends_new_version(self, scoring):
        first = scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 2)
        second = scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 4)

        assert second.version == 2
        assert second.previous_version_id == first.id
        history = scoring.ledger.history("eval-1", "vendor-a", "req-f1")
        assert [e.score for e in history] == [Decimal("2"), Decimal("4")]

    def test_current_entries_use_latest_version(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 2)
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 4)
        scoring.ledger.submit("eval-2", "vendor-a", "req-f1", 3)

        current = scoring.ledger.current_entries("vendor-a", "req-f1")
        assert [(e.evaluator_id, e.score) for e in current] == [
            ("eval-1", Decimal("4")),
            ("eval-2", Decimal("3")),
        ]

    def test_evaluators_never_overwrite_each_other(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 2)
        scoring.ledger.submit("eval-2", "vendor-a", "req-f1", 4)
        assert scoring.ledger.history("eval-1", "vendor-a", "req-f1")[0].version == 1
        assert scoring.ledger.history("eval-2", "vendor-a", "req-f1")[0].version == 1

    def test_areas_are_versioned_separately(self, multi_scoring):
        ledger = multi_scoring.ledger
        ledger.submit("eval-1", "vendor-a", "req-f1", 2, stakeholder_area_id="area-it")
        entry = ledger.submit("eval-1", "vendor-a", "req-f1", 4, stakeholder_area_id="area-biz")
        assert entry.version == 1
        assert len(ledger.current_entries("vendor-a", "req-f1")) == 2

    def test_area_does_not_split_key_outside_multi_stakeholder(self, weighted_scoring):
        ledger = weighted_scoring.ledger
        ledger.submit("eval-1", "vendor-a", "req-f1", 1, stakeholder_area_id="area-it")
        revised = ledger.submit("eval-1", "vendor-a", "req-f1", 3)
        ledger.submit("eval-2", "vendor-a", "req-f1", 5, evidence=EVIDENCE)

        assert revised.version == 2
        assert revised.stakeholder_area_id is None
        assert len(ledger.current_entries("vendor-a", "req-f1")) == 2

        result = weighted_scoring.engine.aggregate(weighted_scoring.evaluation, "vendor-a")
        req = result.requirement_score("req-f1")
        assert req.score == Decimal("4.0000")
        assert req.evaluator_count == 2

    def test_unknown_area_rejected_outside_multi_stakeholder(self, scoring):
        with pytest.raises(MissingStakeholderArea):
            scoring.ledger.submit(
                "eval-1", "vendor-a", "req-f1", 3, stakeholder_area_id="area-legal"
            )


class TestScoreLock:

    @pytest.mark.parametrize("record", [False, True])
    def test_scores_locked_once_consensus_starts(self, scoring, record):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 2)
        scoring.workflow.open_consensus("vendor-a", "req-f1", "facilitator-1")
        if record:
            scoring.workflow.record_consensus("vendor-a", "req-f1", 3, EVIDENCE, "facilitator-1")

        with pytest.raises(ScoreLocked) as exc_info:
            scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 4)
        expected = ConsensusState.CONSENSED if record else ConsensusState.UNDER_CONSENSUS
        assert exc_info.value.state == expected.value

    def test_other_pairs_stay_open(self, scoring):
        scoring.workflow.open_consensus("vendor-a", "req-f1", "facilitator-1")
        entry = scoring.ledger.submit("eval-1", "vendor-a", "req-f2", 4)
        assert entry.version == 1


class TestDraftAndSubmitted:

    def test_scores_start_as_drafts(self, scoring):
        entry = scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3)
        assert entry.status == ScoreStatus.DRAFT
        assert entry.submitted_at is None

    def test_submit_directly(self, scoring):
        entry = scoring.ledger.submit(
            "eval-1", "vendor-a", "req-f1", 3, status=ScoreStatus.SUBMITTED
        )
        assert entry.status == ScoreStatus.SUBMITTED
        assert entry.submitted_at is not None

    def test_submit_all_covers_one_evaluator_and_vendor(self, scoring):
        ledger = scoring.ledger
        ledger.submit("eval-1", "vendor-a", "req-f1", 2)
        ledger.submit("eval-1", "vendor-a", "req-t1", 4)
        ledger.submit("eval-1", "vendor-b", "req-f1", 3)
        ledger.submit("eval-2", "vendor-a", "req-f1", 3)

        assert ledger.submit_all("vendor-a", "eval-1") == 2

        statuses = {
            (e.evaluator_id, e.requirement_id): e.status
            for e in ledger.current_entries("vendor-a", "req-f1")
            + ledger.current_entries("vendor-a", "req-t1")
        }
        assert statuses == {
            ("eval-1", "req-f1"): ScoreStatus.SUBMITTED,
            ("eval-1", "req-t1"): ScoreStatus.SUBMITTED,
            ("eval-2", "req-f1"): ScoreStatus.DRAFT,
        }
        assert ledger.current_entries("vendor-b", "req-f1")[0].status == ScoreStatus.DRAFT

    def test_submission_keeps_score_and_history(self, scoring):
        ledger = scoring.ledger
        draft = ledger.submit("eval-1", "vendor-a", "req-f1", 2, evidence="Demo notes")
        ledger.submit_all("vendor-a", "eval-1")

        history = ledger.history("eval-1", "vendor-a", "req-f1")
        assert [e.status for e in history] == [ScoreStatus.DRAFT, ScoreStatus.SUBMITTED]
        assert history[-1].score == draft.score
        assert history[-1].evidence == "Demo notes"
        assert history[-1].previous_version_id == draft.id

    def test_submit_all_twice_submits_nothing_new(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 2)
        assert scoring.ledger.submit_all("vendor-a", "eval-1") == 1
        assert scoring.ledger.submit_all("vendor-a", "eval-1") == 0

    def test_locked_pairs_are_skipped(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 2)
        scoring.ledger.submit("eval-1", "vendor-a", "req-t1", 4)
        scoring.workflow.open_consensus("vendor-a", "req-f1", "facilitator-1")

        assert scoring.ledger.submit_all("vendor-a", "eval-1") == 1
        assert len(scoring.ledger.history("eval-1", "vendor-a", "req-f1")) == 1

    def test_status_does_not_change_aggregation(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 2)
        scoring.ledger.submit("eval-2", "vendor-a", "req-f1", 4)
        before = scoring.engine.aggregate(scoring.evaluation, "vendor-a")

        scoring.ledger.submit_all("vendor-a", "eval-1")
        after = scoring.engine.aggregate(scoring.evaluation, "vendor-a")
        assert after.overall_score == before.overall_score == Decimal("3.0000")
        assert after.requirement_score("req-f1").evaluator_count == 2


class TestEvidenceLinks:

    def test_link_appends_version(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3)
        entry = scoring.ledger.link_evidence("eval-1", "vendor-a", "req-f1", "doc-1")
        entry = scoring.ledger.link_evidence("eval-1", "vendor-a", "req-f1", "doc-2")

        assert entry.evidence_ids == ("doc-1", "doc-2")
        assert entry.version == 3
        assert entry.score == Decimal("3")

    def test_linking_twice_is_a_no_op(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3, evidence_ids=["doc-1"])
        entry = scoring.ledger.link_evidence("eval-1", "vendor-a", "req-f1", "doc-1")
        assert entry.version == 1

    def test_unlink(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3, evidence_ids=["doc-1", "doc-2"])
        entry = scoring.ledger.unlink_evidence("eval-1", "vendor-a", "req-f1", "doc-1")
        assert entry.evidence_ids == ("doc-2",)

        unchanged = scoring.ledger.unlink_evidence("eval-1", "vendor-a", "req-f1", "doc-9")
        assert unchanged.id == entry.id

    def test_resubmission_carries_links_unless_replaced(self, scoring):
        ledger = scoring.ledger
        ledger.submit("eval-1", "vendor-a", "req-f1", 3, evidence_ids=["doc-1", "doc-1"])
        kept = ledger.submit("eval-1", "vendor-a", "req-f1", 4)
        assert kept.evidence_ids == ("doc-1",)

        replaced = ledger.submit("eval-1", "vendor-a", "req-f1", 4, evidence_ids=[])
        assert replaced.evidence_ids == ()

    def test_link_needs_an_existing_score(self, scoring):
        with pytest.raises(EntityNotFoundException) as exc_info:
            scoring.ledger.link_evidence("eval-1", "vendor-a", "req-f1", "doc-1")
        assert exc_info.value.entity_type == "ScoreEntry"

    def test_links_locked_with_the_score(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3)
        scoring.workflow.open_consensus("vendor-a", "req-f1", "facilitator-1")
        with pytest.raises(ScoreLocked):
            scoring.ledger.link_evidence("eval-1", "vendor-a", "req-f1", "doc-1")

    def test_links_follow_area_lanes(self, multi_scoring):
        ledger = multi_scoring.ledger
        ledger.submit("eval-1", "vendor-a", "req-f1", 3, stakeholder_area_id="area-it")
        ledger.submit("eval-1", "vendor-a", "req-f1", 2, stakeholder_area_id="area-biz")

        linked = ledger.link_evidence(
            "eval-1", "vendor-a", "req-f1", "doc-1", stakeholder_area_id="area-biz"
        )
        assert linked.stakeholder_area_id == "area-biz"
        it_lane = ledger.history("eval-1", "vendor-a", "req-f1", "area-it")
        assert it_lane[-1].evidence_ids == ()


class TestProgress:

    def test_progress_counts_in_scope_requirements(self, scoring):
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3)
        scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 4)
        scoring.ledger.submit("eval-2", "vendor-a", "req-t1", 2)

        overall = scoring.ledger.progress("vendor-a")
        assert (overall.scored, overall.total_requirements) == (2, 3)
        assert overall.percent_complete == 67

        mine = scoring.ledger.progress("vendor-a", evaluator_id="eval-1")
        assert mine.scored == 1
        assert mine.percent_complete == 33

    def test_wont_have_not_counted(self):
        evaluation = make_evaluation(requirements=[
            Requirement(id="r1", category_id="cat-func"),
            Requirement(id="r2", category_id="cat-func", priority=MoSCoWPriority.WONT_HAVE),
        ])
        comps = build_components(evaluation)
        comps.ledger.submit("eval-1", "vendor-a", "r2", 3)
        progress = comps.ledger.progress("vendor-a")
        assert progress.total_requirements == 1
        assert progress.scored == 0
        assert progress.percent_complete == 0


class TestConcurrentSubmissions:

    def test_parallel_submissions_keep_every_version(self, scoring):
        evaluators = [f"eval-{i}" for i in range(8)]
        barrier = threading.Barrier(len(evaluators))
        errors = []

        def worker(evaluator_id):
            barrier.wait()
            try:
                for score in (1, 2, 3, 4):
                    scoring.ledger.submit(evaluator_id, "vendor-a", "req-f1", score)
            except Exception as exc:  # surfaced through the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(e,)) for e in evaluators]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(scoring.repository.list_scores()) == 32
        for evaluator_id in evaluators:
            history = scoring.ledger.history(evaluator_id, "vendor-a", "req-f1")
            assert [e.version for e in history] == [1, 2, 3, 4]
        current = scoring.ledger.current_entries("vendor-a", "req-f1")
        assert {e.score for e in current} == {Decimal("4")}

    def test_same_key_from_many_threads_gets_unique_versions(self, scoring):
        barrier = threading.Barrier(6)

        def worker():
            barrier.wait()
            scoring.ledger.submit("eval-1", "vendor-a", "req-f1", 3)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        versions = [e.version for e in scoring.ledger.history("eval-1", "vendor-a", "req-f1")]
        assert versions == [1, 2, 3, 4, 5, 6]
