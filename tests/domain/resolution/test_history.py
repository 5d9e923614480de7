from __future__ import annotations

from datetime import date

import pytest

from liftmatch.config import ResolutionConfig
from liftmatch.domain.model import Lifter
from liftmatch.domain.ports.sources import HistoryEntry
from liftmatch.domain.resolution import (
    MemberHistoryVerifier,
    MissingContextError,
    ResolutionTrace,
    ResultContext,
    VerificationRequest,
    VerificationStatus,
)
from tests.helpers.fakes import FakeMemberSource, make_store

MEET_DATE = date(2024, 3, 1)


def _entry(on: date, *, bodyweight_kg: float = 61.6, total_kg: float = 171.0) -> HistoryEntry:
    return HistoryEntry(
        meet_name="Spring  Open",
        meet_date=on,
        bodyweight_kg=bodyweight_kg,
        total_kg=total_kg,
    )


def _check(verifier: MemberHistoryVerifier, **expected: float) -> VerificationStatus:
    return verifier.check(
        "555",
        meet_name="spring open",
        meet_date=MEET_DATE,
        expected_bodyweight_kg=expected.get("bodyweight", 61.5),
        expected_total_kg=expected.get("total", 170.0),
    ).status


def test_check_accepts_dates_within_tolerance(resolution_config: ResolutionConfig) -> None:
    source = FakeMemberSource(histories={"555": [_entry(date(2024, 3, 6))]})

    assert _check(MemberHistoryVerifier(source, resolution_config)) is VerificationStatus.VERIFIED


def test_check_rejects_dates_outside_tolerance(resolution_config: ResolutionConfig) -> None:
    source = FakeMemberSource(histories={"555": [_entry(date(2024, 3, 7))]})

    assert _check(MemberHistoryVerifier(source, resolution_config)) is VerificationStatus.NOT_FOUND


@pytest.mark.parametrize(
    ("bodyweight", "total"),
    [(64.0, 170.0), (61.5, 177.0)],
)
def test_check_reports_performance_mismatch(
    resolution_config: ResolutionConfig,
    bodyweight: float,
    total: float,
) -> None:
    source = FakeMemberSource(histories={"555": [_entry(MEET_DATE)]})
    verifier = MemberHistoryVerifier(source, resolution_config)

    status = _check(verifier, bodyweight=bodyweight, total=total)

    assert status is VerificationStatus.PERFORMANCE_MISMATCH


def test_check_uses_closest_entry(resolution_config: ResolutionConfig) -> None:
    source = FakeMemberSource(
        histories={"555": [_entry(date(2024, 3, 5), total_kg=100.0), _entry(date(2024, 3, 2))]}
    )

    assert _check(MemberHistoryVerifier(source, resolution_config)) is VerificationStatus.VERIFIED


def test_verify_discovers_and_keeps_member_id(resolution_config: ResolutionConfig) -> None:
    store = make_store()
    candidate = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=11))
    source = FakeMemberSource(
        histories={"556": [_entry(date(2024, 1, 1))]},
        search_results={"Jane Smith": "556"},
    )
    request = VerificationRequest(
        context=ResultContext(
            name="Jane Smith",
            meet_id="m-1",
            meet_name="Spring Open",
            meet_date=MEET_DATE,
        ),
        candidates=(candidate,),
        store=store,
        trace=ResolutionTrace(name="Jane Smith"),
    )

    outcome = MemberHistoryVerifier(source, resolution_config).verify(request)

    assert outcome.status is VerificationStatus.NOT_FOUND
    assert store.lifters.get(11).stable_id == "556"


def test_verify_needs_meet_name(resolution_config: ResolutionConfig) -> None:
    request = VerificationRequest(
        context=ResultContext(name="Jane Smith", meet_id="m-1", meet_date=MEET_DATE),
        candidates=(),
        store=make_store(),
        trace=ResolutionTrace(name="Jane Smith"),
    )

    with pytest.raises(MissingContextError):
        MemberHistoryVerifier(FakeMemberSource(), resolution_config).verify(request)


def test_verify_skips_excluded_candidate_before_discovery(
    resolution_config: ResolutionConfig,
) -> None:
    store = make_store()
    heavier = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=10))
    lighter = store.lifters.add(Lifter(normalized_name="Jane Smith", lifter_id=11))
    source = FakeMemberSource(
        histories={"556": [_entry(date(2024, 3, 2))]},
        search_results={"Jane Smith": "556"},
    )
    request = VerificationRequest(
        context=ResultContext(
            name="Jane Smith",
            meet_id="m-1",
            meet_name="Spring Open",
            meet_date=MEET_DATE,
            bodyweight_kg=61.5,
            total_kg=170.0,
        ),
        candidates=(heavier, lighter),
        store=store,
        trace=ResolutionTrace(name="Jane Smith"),
        excluded_candidate_ids=frozenset({10}),
    )

    outcome = MemberHistoryVerifier(source, resolution_config).verify(request)

    assert outcome.status is VerificationStatus.VERIFIED
    assert outcome.matched_candidate_id == 11
    assert store.lifters.get(10).stable_id is None
    assert store.lifters.get(11).stable_id == "556"
