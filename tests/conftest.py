"""
Shared pytest fixtures for hl7spine tests.

This module provides:
- An in-memory SQLite session with the schema and the ``local`` source
- Seeded patients and a ``remote-lab`` source
- Sample ``ORU^R01`` messages
- A fully wired pipeline bound to the test session

Usage:
    def test_something(pipeline, oru_r01_message):
        entry = enqueue(pipeline, oru_r01_message)
        ...
"""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest

# Ensure hl7spine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hl7spine.core.models import Patient, QueueEntry
from hl7spine.core.orm import Hl7Session, create_hl7_engine, init_schema
from hl7spine.core.repositories import PatientRepository, QueueRepository
from hl7spine.core.settings import Hl7SpineSettings
from hl7spine.wiring import Pipeline, build_pipeline

REMOTE_SOURCE = "remote-lab"

# =============================================================================
# Sample messages
# =============================================================================

ORU_R01_MESSAGE = (
    "MSH|^~\\&|REFPACS|IU|HL7LISTENER|AMRS.ELD|20080226102656||ORU^R01|ABC101083591|P|2.5|1"
    "||||||||16^AMRS.ELD.FORMID\r"
    "PID|||3^^^^||John3^Doe^||\r"
    "PV1||O|1^Unknown Location||||1^Super User (1-8)|||||||||||||||||||||||||||||||||||||"
    "20080212|||||||V\r"
    "ORC|RE||||||||20080226102537|1^Super User\r"
    "OBR|1|||1238^MEDICAL RECORD OBSERVATIONS^99DCT\r"
    "OBX|1|CWE|1558^PATIENT CONTACT METHOD^99DCT||1555^PHONE^99DCT~1726^FOLLOW-UP ACTION^99DCT"
    "|||||||||20080206\r"
    "OBX|5|DT|5096^RETURN VISIT DATE^99DCT||20080229|||||||||20080212"
)

# Same facts, linked through a shared OBX-4 sub-id instead of a repeating value
ORU_R01_SUB_ID_MESSAGE = (
    "MSH|^~\\&|REFPACS|IU|HL7LISTENER|AMRS.ELD|20080226102656||ORU^R01|ABC101083592|P|2.5|1\r"
    "PID|||3^^^^||John3^Doe^||\r"
    "PV1||O|1^Unknown Location||||1^Super User (1-8)|||||||||||||||||||||||||||||||||||||"
    "20080212|||||||V\r"
    "OBR|1|||1238^MEDICAL RECORD OBSERVATIONS^99DCT\r"
    "OBX|1|CWE|1558^PATIENT CONTACT METHOD^99DCT|1|1555^PHONE^99DCT|||||||||20080206\r"
    "OBX|2|CWE|1558^PATIENT CONTACT METHOD^99DCT|1|1726^FOLLOW-UP ACTION^99DCT|||||||||20080206\r"
    "OBX|3|NM|5089^WEIGHT (KG)^99DCT||61.5|||||||||20080212\r"
    "OBX|4|DT|5096^RETURN VISIT DATE^99DCT||20080229|||||||||20080212"
)

UNKNOWN_PATIENT_MESSAGE = ORU_R01_MESSAGE.replace("PID|||3^^^^|", "PID|||999^^^^|")

ADT_A04_MESSAGE = (
    "MSH|^~\\&|REG|IU|HL7LISTENER|AMRS.ELD|20080226102656||ADT^A04|ADT0001|P|2.5\r"
    "PID|||3^^^^||John3^Doe^||\r"
    "PV1||O|1^Unknown Location"
)


@pytest.fixture
def oru_r01_message() -> str:
    return ORU_R01_MESSAGE


@pytest.fixture
def oru_r01_sub_id_message() -> str:
    return ORU_R01_SUB_ID_MESSAGE


@pytest.fixture
def unknown_patient_message() -> str:
    return UNKNOWN_PATIENT_MESSAGE


@pytest.fixture
def adt_a04_message() -> str:
    return ADT_A04_MESSAGE


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def settings() -> Hl7SpineSettings:
    """Settings isolated from the environment (patients are never skipped)."""
    return Hl7SpineSettings(
        database_url="sqlite:///:memory:",
        ignore_missing_nonlocal_patients=False,
        error_detail_max_length=8000,
        _env_file=None,
    )


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created and ``local`` seeded."""
    eng = create_hl7_engine("sqlite:///:memory:")
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine) -> Generator[Hl7Session, None, None]:
    with Hl7Session(bind=engine) as sess:
        yield sess


@pytest.fixture
def patient(session) -> Patient:
    """Patient 3, the one referenced by the sample messages."""
    repo = PatientRepository(session)
    for pid in (1, 2):
        repo.save(Patient(id=pid, identifier=f"MRN-{pid}", given_name="Filler"))
    saved = repo.save(
        Patient(id=3, identifier="MRN-3", identifier_authority="AMRS", given_name="John3", family_name="Doe")
    )
    session.commit()
    return saved


@pytest.fixture
def pipeline(session, settings, patient) -> Pipeline:
    return build_pipeline(session, settings)


def enqueue(pipeline: Pipeline, raw_data: str, source_name: str = "local", source_key: str | None = "K1") -> QueueEntry:
    """Put ``raw_data`` into the queue and commit."""
    queue: QueueRepository = pipeline.queue
    source = queue.resolve_source(source_name)
    entry = queue.enqueue(raw_data, source.id, source_key)
    queue.commit()
    return entry


@pytest.fixture
def enqueue_message(pipeline):
    """Factory fixture: ``enqueue_message(raw, source_name="local", source_key="K1")``."""

    def _enqueue(raw_data: str, source_name: str = "local", source_key: str | None = "K1") -> QueueEntry:
        return enqueue(pipeline, raw_data, source_name, source_key)

    return _enqueue
