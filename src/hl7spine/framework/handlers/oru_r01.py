"""``ORU^R01`` handler that stores repeated or linked results as value groups.

For each message the handler

1. resolves the patient from ``PID-3``,
2. creates one encounter (location ``PV1-3``, form ``MSH-21``, time from
   ``PV1-44``, ``ORC-9`` or ``MSH-7``),
3. splits the OBX results into groups and persists each group through the
   :class:`~hl7spine.framework.correlator.ValueGroupCorrelator`.

Grouping: two adjacent results belong to the same group when they report
the same concept and either come from the same OBX (its value field
repeats) or carry the same non-empty ``OBX-4`` sub-id::

    OBX|1|CWE|1558^CONTACT METHOD||1555^PHONE~1726^FOLLOW-UP   → one group of 2
    OBX|2|DT|5096^RETURN VISIT DATE||20080229                   → ungrouped

Value types:
    CE, CWE        → value_coded   (first component, must be numeric)
    NM             → value_numeric
    DT, TS, DTM    → value_datetime
    anything else  → value_text
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from hl7spine.core.errors import Hl7Error, PatientNotResolvedError
from hl7spine.core.logging import get_logger
from hl7spine.core.models import Encounter, HandlerResult, Observation, Patient
from hl7spine.core.protocols import EncounterStore, PatientStore
from hl7spine.framework.correlator import ValueGroupCorrelator
from hl7spine.framework.message import ParsedMessage, ResultSegment, parse_hl7_datetime

logger = get_logger(__name__)

CODED_TYPES = frozenset({"CE", "CWE"})
NUMERIC_TYPES = frozenset({"NM"})
DATETIME_TYPES = frozenset({"DT", "TS", "DTM"})


def same_group(previous: ResultSegment, current: ResultSegment) -> bool:
    if previous.concept.code != current.concept.code:
        return False
    if previous.segment_index == current.segment_index:
        return True
    return bool(current.sub_id) and previous.sub_id == current.sub_id


def group_results(results: Iterable[ResultSegment]) -> list[list[ResultSegment]]:
    """Split results (in message order) into runs of adjacent related results."""
    groups: list[list[ResultSegment]] = []
    for result in sorted(results, key=lambda r: r.position):
        if groups and same_group(groups[-1][-1], result):
            groups[-1].append(result)
        else:
            groups.append([result])
    return groups


def _int_or_none(value: str) -> int | None:
    value = value.strip()
    return int(value) if value.isdigit() else None


class ValueGroupOruR01Handler:
    """Persists ``ORU^R01`` observations, linking related results into groups."""

    def __init__(
        self,
        patients: PatientStore,
        encounters: EncounterStore,
        correlator: ValueGroupCorrelator,
    ):
        self.patients = patients
        self.encounters = encounters
        self.correlator = correlator

    def process_message(self, message: ParsedMessage) -> HandlerResult:
        if message.key.name != "ORU_R01":
            raise Hl7Error(f"Invalid message sent to ORU_R01 handler: {message.name}")

        patient = self.resolve_patient(message)
        encounter = self.encounters.save(self.build_encounter(message, patient))

        result = HandlerResult(message_name=message.name, encounter_id=encounter.id)
        for group in group_results(message.results):
            saved = self.correlator.persist_group(
                group, lambda segment: self.build_observation(segment, patient, encounter)
            )
            result.observation_ids.extend(o.id for o in saved if o.id is not None)
            if len(saved) > 1 and saved[0].id is not None:
                result.value_group_ids.append(saved[0].id)

        logger.info(
            "oru_r01.processed",
            patient_id=patient.id,
            encounter_id=encounter.id,
            observations=len(result.observation_ids),
            value_groups=len(result.value_group_ids),
        )
        return result

    # ------------------------------------------------------------------ #

    def resolve_patient(self, message: ParsedMessage) -> Patient:
        """Look up the patient named by PID-3.

        A bare numeric identifier without an assigning authority is the
        internal patient id; anything else is matched against stored
        identifiers.

        Raises:
            PatientNotResolvedError: when no patient matches.
        """
        pid = message.segment("PID")
        if pid is None:
            raise PatientNotResolvedError()

        for repetition in range(max(len(pid.repetitions(3)), 1)):
            identifier = pid.component(3, 1, repetition).strip()
            authority = pid.component(3, 4, repetition).strip() or None
            if not identifier:
                continue
            patient = None
            if authority is None and identifier.isdigit():
                patient = self.patients.get(int(identifier))
            if patient is None:
                patient = self.patients.find_by_identifier(identifier, authority)
            if patient is not None:
                return patient
        raise PatientNotResolvedError()

    def build_encounter(self, message: ParsedMessage, patient: Patient) -> Encounter:
        pv1 = message.segment("PV1")
        orc = message.segment("ORC")
        msh = message.segment("MSH")

        candidates = [
            pv1.component(44) if pv1 else "",
            orc.component(9) if orc else "",
            msh.component(7) if msh else "",
        ]
        when: datetime | None = None
        for candidate in candidates:
            when = parse_hl7_datetime(candidate)
            if when is not None:
                break
        if when is None:
            raise Hl7Error("Could not determine the encounter date/time (PV1-44, ORC-9, MSH-7)")

        return Encounter(
            patient_id=patient.id,
            encounter_datetime=when,
            location_id=_int_or_none(pv1.component(3)) if pv1 else None,
            form_id=_int_or_none(msh.component(21)) if msh else None,
            message_control_id=message.control_id or None,
        )

    def build_observation(self, segment: ResultSegment, patient: Patient, encounter: Encounter) -> Observation:
        concept_id = _int_or_none(segment.concept.code)
        if concept_id is None:
            raise Hl7Error(
                f"OBX {segment.set_id or segment.segment_index}: concept {segment.concept.code!r} is not a valid concept id"
            )

        observation = Observation(
            patient_id=patient.id,
            encounter_id=encounter.id,
            concept_id=concept_id,
            value_type=segment.value_type or "ST",
            obs_datetime=parse_hl7_datetime(segment.observed_at) or encounter.encounter_datetime,
        )
        value_type = segment.value_type
        if value_type in CODED_TYPES:
            code = _int_or_none(segment.coded_value.code)
            if code is None:
                raise Hl7Error(f"OBX {segment.set_id}: coded value {segment.value!r} is not a valid concept id")
            observation.value_coded = code
        elif value_type in NUMERIC_TYPES:
            try:
                observation.value_numeric = float(segment.text)
            except ValueError as e:
                raise Hl7Error(f"OBX {segment.set_id}: {segment.value!r} is not numeric", cause=e) from e
        elif value_type in DATETIME_TYPES:
            observation.value_datetime = parse_hl7_datetime(segment.coded_value.code)
        else:
            observation.value_text = segment.text
        return observation


__all__ = ["ValueGroupOruR01Handler", "group_results", "same_group"]
