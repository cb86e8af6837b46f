"""Tests for hl7spine.framework.correlator."""

from datetime import datetime

import pytest

from hl7spine.core.models import Observation
from hl7spine.core.repositories import ObservationRepository
from hl7spine.framework.correlator import ValueGroupCorrelator
from hl7spine.framework.message import CodedValue, ResultSegment


def _segment(position: int, code: str = "1558", value: str = "1555") -> ResultSegment:
    return ResultSegment(
        position=position,
        segment_index=1,
        set_id="1",
        value_type="CWE",
        concept=CodedValue(code),
        sub_id="",
        value=value,
    )


def _build(segment: ResultSegment) -> Observation:
    return Observation(
        patient_id=3,
        concept_id=int(segment.concept.code),
        value_type="CWE",
        value_coded=int(segment.coded_value.code),
        obs_datetime=datetime(2008, 2, 6),
    )


@pytest.fixture
def observations(session, patient):
    return ObservationRepository(session)


@pytest.fixture
def correlator(observations):
    return ValueGroupCorrelator(observations)


class TestPersistGroup:
    def test_group_of_two_shares_anchor_id(self, correlator):
        saved = correlator.persist_group([_segment(1, value="1555"), _segment(2, value="1726")], _build)

        anchor, follower = saved
        assert anchor.value_group_id == anchor.id
        assert follower.value_group_id == anchor.id
        assert anchor.is_group_anchor
        assert not follower.is_group_anchor

    def test_anchor_is_lowest_position(self, correlator):
        saved = correlator.persist_group([_segment(2, value="1726"), _segment(1, value="1555")], _build)
        assert [o.value_coded for o in saved] == [1555, 1726]

    def test_single_segment_ungrouped(self, correlator):
        [saved] = correlator.persist_group([_segment(1)], _build)
        assert saved.id is not None
        assert saved.value_group_id is None

    def test_empty(self, correlator):
        assert correlator.persist_group([], _build) == []

    def test_persisted_links(self, correlator, observations):
        anchor, follower = correlator.persist_group([_segment(1), _segment(2, value="1726")], _build)
        assert observations.get(anchor.id).value_group_id == anchor.id
        assert observations.get(follower.id).value_group_id == anchor.id


class TestResolve:
    def test_anchor_of(self, correlator):
        anchor, follower = correlator.persist_group([_segment(1), _segment(2, value="1726")], _build)
        assert correlator.anchor_of(follower).id == anchor.id
        assert correlator.anchor_of(anchor) is anchor

    def test_anchor_of_ungrouped(self, correlator):
        [single] = correlator.persist_group([_segment(1)], _build)
        assert correlator.anchor_of(single) is None

    def test_resolve_group(self, correlator):
        anchor, follower = correlator.persist_group([_segment(1), _segment(2, value="1726")], _build)
        assert [o.id for o in correlator.resolve_group(follower)] == [anchor.id, follower.id]

    def test_resolve_group_ungrouped(self, correlator):
        [single] = correlator.persist_group([_segment(1)], _build)
        assert correlator.resolve_group(single) == [single]
