"""Clinical repositories: patients, encounters, observations.

Tags:
    hl7spine, repository, patients, encounters, observations

Doc-Types:
    api-reference
"""

from __future__ import annotations

from sqlalchemy import select

from hl7spine.core.models import Encounter, Observation, Patient
from hl7spine.core.orm.tables import EncounterTable, ObservationTable, PatientTable

from ._helpers import SessionRepository


class PatientRepository(SessionRepository):
    """CRUD for the ``patients`` table."""

    def get(self, patient_id: int) -> Patient | None:
        row = self.session.get(PatientTable, patient_id)
        return _patient(row) if row is not None else None

    def find_by_identifier(self, identifier: str, authority: str | None = None) -> Patient | None:
        """Match on identifier; when ``authority`` is given it must match too."""
        stmt = select(PatientTable).where(PatientTable.identifier == identifier)
        if authority:
            stmt = stmt.where(PatientTable.identifier_authority == authority)
        row = self.session.scalars(stmt.order_by(PatientTable.id).limit(1)).first()
        return _patient(row) if row is not None else None

    def save(self, patient: Patient) -> Patient:
        row = self.session.get(PatientTable, patient.id) if patient.id is not None else None
        if row is None:
            row = PatientTable(id=patient.id)
            self.session.add(row)
        row.identifier = patient.identifier
        row.identifier_authority = patient.identifier_authority
        row.given_name = patient.given_name
        row.family_name = patient.family_name
        self.session.flush()
        patient.id = row.id
        return patient


class EncounterRepository(SessionRepository):
    """CRUD for the ``encounters`` table."""

    def save(self, encounter: Encounter) -> Encounter:
        row = self.session.get(EncounterTable, encounter.id) if encounter.id is not None else None
        if row is None:
            row = EncounterTable()
            self.session.add(row)
        row.patient_id = encounter.patient_id
        row.location_id = encounter.location_id
        row.form_id = encounter.form_id
        row.encounter_datetime = encounter.encounter_datetime
        row.message_control_id = encounter.message_control_id
        self.session.flush()
        encounter.id = row.id
        return encounter

    def get(self, encounter_id: int) -> Encounter | None:
        row = self.session.get(EncounterTable, encounter_id)
        if row is None:
            return None
        return Encounter(
            id=row.id,
            patient_id=row.patient_id,
            location_id=row.location_id,
            form_id=row.form_id,
            encounter_datetime=row.encounter_datetime,
            message_control_id=row.message_control_id,
        )


class ObservationRepository(SessionRepository):
    """CRUD for the ``observations`` table.

    ``save`` inserts when ``id`` is None and updates otherwise; the
    correlator relies on the second form to point a group anchor at itself.
    """

    _FIELDS = (
        "patient_id",
        "encounter_id",
        "concept_id",
        "value_type",
        "value_coded",
        "value_numeric",
        "value_datetime",
        "value_text",
        "obs_datetime",
        "value_group_id",
    )

    def save(self, observation: Observation) -> Observation:
        row = (
            self.session.get(ObservationTable, observation.id)
            if observation.id is not None
            else None
        )
        if row is None:
            row = ObservationTable()
            self.session.add(row)
        for name in self._FIELDS:
            setattr(row, name, getattr(observation, name))
        self.session.flush()
        observation.id = row.id
        return observation

    def get(self, observation_id: int) -> Observation | None:
        row = self.session.get(ObservationTable, observation_id)
        return self._observation(row) if row is not None else None

    def list_group(self, value_group_id: int) -> list[Observation]:
        """Every observation of a value group, anchor first."""
        rows = self.session.scalars(
            select(ObservationTable)
            .where(ObservationTable.value_group_id == value_group_id)
            .order_by(ObservationTable.id)
        )
        return [self._observation(r) for r in rows]

    def list_for_patient(self, patient_id: int, concept_id: int | None = None) -> list[Observation]:
        stmt = select(ObservationTable).where(ObservationTable.patient_id == patient_id)
        if concept_id is not None:
            stmt = stmt.where(ObservationTable.concept_id == concept_id)
        rows = self.session.scalars(stmt.order_by(ObservationTable.id))
        return [self._observation(r) for r in rows]

    def list_for_encounter(self, encounter_id: int) -> list[Observation]:
        rows = self.session.scalars(
            select(ObservationTable)
            .where(ObservationTable.encounter_id == encounter_id)
            .order_by(ObservationTable.id)
        )
        return [self._observation(r) for r in rows]

    def _observation(self, row: ObservationTable) -> Observation:
        return Observation(id=row.id, **{name: getattr(row, name) for name in self._FIELDS})


def _patient(row: PatientTable) -> Patient:
    return Patient(
        id=row.id,
        identifier=row.identifier,
        identifier_authority=row.identifier_authority,
        given_name=row.given_name,
        family_name=row.family_name,
    )
