"""Value-group correlation of observations.

A value group is a set of observations that together report one composite
value (e.g. "contact method: phone AND follow-up action"). The handler
decides which result segments belong together; the correlator persists
them linked through ``value_group_id``.

Write order for a group of two or more::

    1. save anchor                      → anchor.id = 41
    2. anchor.value_group_id = 41, save (self-reference marks the anchor)
    3. save followers with value_group_id = 41

A single segment is saved with ``value_group_id = None``. All writes go
through the observation store's session, so a later failure in the same
message rolls back partially written groups with everything else.

Tags:
    hl7spine, framework, correlator, value-group, observations
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from hl7spine.core.errors import Hl7Error
from hl7spine.core.logging import get_logger
from hl7spine.core.models import Observation
from hl7spine.core.protocols import ObservationStore
from hl7spine.framework.message import ResultSegment

logger = get_logger(__name__)

ObservationBuilder = Callable[[ResultSegment], Observation]


class ValueGroupCorrelator:
    def __init__(self, observations: ObservationStore):
        self.observations = observations

    def persist_group(
        self,
        segments: Sequence[ResultSegment],
        build: ObservationBuilder,
    ) -> list[Observation]:
        """Persist ``segments`` as one group and return the saved observations.

        The segment with the lowest ``position`` becomes the anchor; the
        returned list is in position order, anchor first.
        """
        if not segments:
            return []

        ordered = sorted(segments, key=lambda s: s.position)
        if len(ordered) == 1:
            observation = build(ordered[0])
            observation.value_group_id = None
            return [self.observations.save(observation)]

        anchor = build(ordered[0])
        anchor.value_group_id = None
        anchor = self.observations.save(anchor)
        if anchor.id is None:
            raise Hl7Error("Observation store did not assign an id to the group anchor")
        anchor.value_group_id = anchor.id
        anchor = self.observations.save(anchor)

        saved = [anchor]
        for segment in ordered[1:]:
            follower = build(segment)
            follower.value_group_id = anchor.id
            saved.append(self.observations.save(follower))

        logger.debug(
            "value_group.persisted",
            value_group_id=anchor.id,
            concept_id=anchor.concept_id,
            size=len(saved),
        )
        return saved

    def anchor_of(self, observation: Observation) -> Observation | None:
        """The anchor of ``observation``'s group, or None when ungrouped."""
        if observation.value_group_id is None:
            return None
        if observation.value_group_id == observation.id:
            return observation
        return self.observations.get(observation.value_group_id)

    def resolve_group(self, observation: Observation) -> list[Observation]:
        """Every member of ``observation``'s group; just itself when ungrouped."""
        if observation.value_group_id is None:
            return [observation]
        return self.observations.list_group(observation.value_group_id)


__all__ = ["ValueGroupCorrelator", "ObservationBuilder"]
