from __future__ import annotations

from datetime import date

import pytest

from liftmatch.config import DivisionCatalog, ResolutionConfig
from liftmatch.domain.model import Lifter, MeetResult
from liftmatch.domain.ports.sources import AthleteSummary, ResultSetTooLargeError
from liftmatch.domain.ports.unit_of_work import ResolutionRepositories
from liftmatch.domain.resolution import (
    DivisionVerifier,
    MissingContextError,
    ResolutionTrace,
    ResultContext,
    VerificationRequest,
    VerificationStatus,
)
from tests.helpers.fakes import FakeRankingSource, make_store

MEET_DATE = date(2024, 3, 1)


def _request(
    store: ResolutionRepositories,
    *,
    candidates: tuple[Lifter, ...] = (),
    total_kg: float | None = 170.0,
    excluded: frozenset[int] = frozenset(),
) -> VerificationRequest:
    context = ResultContext(
        name="Jane Smith",
        meet_id="m-2024-03",
        meet_date=MEET_DATE,
        age_category="Open Women's",
        weight_class="63kg",
        total_kg=total_kg,
    )
    return VerificationRequest(
        context=context,
        candidates=candidates,
        store=store,
        trace=ResolutionTrace(name=context.name),
        excluded_candidate_ids=excluded,
    )


def test_division_codes_follow_meet_date(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    verifier = DivisionVerifier(FakeRankingSource(), division_catalog, resolution_config)

    assert verifier.division_codes("Open Women's", "63kg", date(2025, 7, 1)) == [101, 201]
    assert verifier.division_codes("Open Women's", "63kg", date(2024, 3, 1)) == [201, 101]
    assert verifier.division_codes("Junior Men's", "89kg", date(2024, 3, 1)) == [103]
    assert verifier.division_codes("Masters Men's", "89kg", date(2024, 3, 1)) == []


def test_falls_back_to_other_division_variant(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    ranking = FakeRankingSource()
    ranking.add(101, MEET_DATE, AthleteSummary(name="Jane Smith", stable_id="1234"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(make_store()))

    assert outcome.status is VerificationStatus.VERIFIED
    assert outcome.extracted_attributes["stable_id"] == "1234"
    assert [call[0] for call in ranking.calls] == [201, 101]


def test_unknown_division_is_not_found(resolution_config: ResolutionConfig) -> None:
    ranking = FakeRankingSource()
    verifier = DivisionVerifier(ranking, DivisionCatalog(), resolution_config)

    outcome = verifier.verify(_request(make_store()))

    assert outcome.status is VerificationStatus.NOT_FOUND
    assert ranking.calls == []


def test_oversized_window_is_bisected(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    ranking = FakeRankingSource(max_span_days=3)
    ranking.add(201, date(2024, 2, 26), AthleteSummary(name="Mary Lee", stable_id="4321"))
    ranking.add(201, date(2024, 3, 4), AthleteSummary(name="Jane Smith", stable_id="1234"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(make_store()))

    assert outcome.status is VerificationStatus.VERIFIED
    assert outcome.extracted_attributes["stable_id"] == "1234"
    windows = [(start, end) for _, start, end in ranking.calls]
    assert windows[0] == (date(2024, 2, 25), date(2024, 3, 6))
    assert (date(2024, 2, 25), date(2024, 3, 1)) in windows
    assert (date(2024, 3, 2), date(2024, 3, 4)) in windows
    assert all((end - start).days <= 10 for start, end in windows)


def test_bisection_stops_once_earlier_half_has_the_name(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    ranking = FakeRankingSource(max_span_days=3)
    ranking.add(201, date(2024, 2, 26), AthleteSummary(name="Jane Smith", stable_id="1234"))
    ranking.add(201, date(2024, 3, 4), AthleteSummary(name="Jane Smith", stable_id="9999"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(make_store()))

    assert outcome.extracted_attributes["stable_id"] == "1234"
    assert all(start <= date(2024, 3, 1) for _, start, _ in ranking.calls)


def test_degraded_window_is_inconclusive(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    ranking = FakeRankingSource(error=ResultSetTooLargeError("timeout"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(make_store()))

    assert outcome.status is VerificationStatus.INCONCLUSIVE


def test_total_separates_same_named_ranked_athletes(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    ranking = FakeRankingSource()
    ranking.add(201, MEET_DATE, AthleteSummary(name="Jane Smith", stable_id="1234", total_kg=171.0))
    ranking.add(201, MEET_DATE, AthleteSummary(name="Jane Smith", stable_id="5678", total_kg=120.0))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    by_total = verifier.verify(_request(make_store()))
    without_total = verifier.verify(_request(make_store(), total_kg=None))

    assert by_total.extracted_attributes["stable_id"] == "1234"
    assert without_total.status is VerificationStatus.NOT_FOUND


def test_ranked_id_owned_outside_candidates_matches_nobody(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    store = make_store()
    store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=1, stable_id="1234"))
    pending = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=2))
    ranking = FakeRankingSource()
    ranking.add(201, MEET_DATE, AthleteSummary(name="Jane Smith", stable_id="1234"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(store, candidates=(pending,)))

    assert outcome.status is VerificationStatus.NOT_FOUND
    assert outcome.matched_candidate_id is None


def test_sweep_enriches_neighbouring_results(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    store = make_store()
    neighbour = store.lifters.add(Lifter(normalized_name="Mary Lee", lifter_id=1))
    stored = store.results.add(
        MeetResult(
            lifter_id=1,
            lifter_name="Mary Lee",
            meet_id="m-2024-03",
            meet_date=MEET_DATE,
            age_category="Open Women's",
            weight_class="63kg",
        )
    )
    ranking = FakeRankingSource()
    ranking.add(201, MEET_DATE, AthleteSummary(name="Jane Smith", stable_id="1234"))
    ranking.add(201, MEET_DATE, AthleteSummary(name="LEE Mary", stable_id="4321", club="Lake", rank=2))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    verifier.verify(_request(store))

    assert stored.club_name == "Lake"
    assert stored.national_rank == 2
    assert neighbour.stable_id == "4321"


def test_same_division_collision_is_skipped(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    ranking = FakeRankingSource()
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)
    request = _request(make_store())
    request.same_division_collision = True

    outcome = verifier.verify(request)

    assert outcome.status is VerificationStatus.SKIPPED
    assert ranking.calls == []


def test_degraded_first_code_keeps_outcome_inconclusive(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    ranking = FakeRankingSource(degraded_codes=frozenset({201}))
    ranking.add(101, MEET_DATE, AthleteSummary(name="Mary Lee", stable_id="4321"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(make_store()))

    assert outcome.status is VerificationStatus.INCONCLUSIVE
    assert 101 in [code for code, _, _ in ranking.calls]


def test_ranked_id_is_not_given_to_implausible_pending_candidate(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    store = make_store()
    pending = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=10))
    owned = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=11, stable_id="555"))
    ranking = FakeRankingSource()
    ranking.add(201, MEET_DATE, AthleteSummary(name="Jane Smith", stable_id="1234"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(store, candidates=(pending, owned), excluded=frozenset({10})))

    assert outcome.status is VerificationStatus.NOT_FOUND
    assert outcome.matched_candidate_id is None
    assert store.lifters.get(10).stable_id is None


def test_ranked_id_held_by_implausible_candidate_is_not_a_match(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    store = make_store()
    first = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=10, stable_id="1234"))
    second = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=11, stable_id="555"))
    ranking = FakeRankingSource()
    ranking.add(201, MEET_DATE, AthleteSummary(name="Jane Smith", stable_id="1234"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(store, candidates=(first, second), excluded=frozenset({10})))

    assert outcome.status is VerificationStatus.NOT_FOUND
    assert outcome.matched_candidate_id is None


def test_ranked_id_is_given_to_the_single_pending_candidate(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    store = make_store()
    pending = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=10))
    owned = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=11, stable_id="555"))
    ranking = FakeRankingSource()
    ranking.add(201, MEET_DATE, AthleteSummary(name="Jane Smith", stable_id="1234"))
    verifier = DivisionVerifier(ranking, division_catalog, resolution_config)

    outcome = verifier.verify(_request(store, candidates=(pending, owned)))

    assert outcome.status is VerificationStatus.VERIFIED
    assert outcome.matched_candidate_id == 10
    assert outcome.reason == "member id 1234 matched"


def test_verify_needs_division_context(
    resolution_config: ResolutionConfig,
    division_catalog: DivisionCatalog,
) -> None:
    request = VerificationRequest(
        context=ResultContext(name="Jane Smith", meet_id="m-1", meet_date=MEET_DATE, age_category="Open Women's"),
        candidates=(),
        store=make_store(),
        trace=ResolutionTrace(name="Jane Smith"),
    )
    verifier = DivisionVerifier(FakeRankingSource(), division_catalog, resolution_config)

    with pytest.raises(MissingContextError) as excinfo:
        verifier.verify(request)

    assert "weight_class" in str(excinfo.value)
