"""Tests for hl7spine.framework.processor (end to end on in-memory SQLite)."""

import pytest

from hl7spine.core.errors import DuplicateProcessingError
from hl7spine.core.models import MessageState, Outcome
from hl7spine.core.result import Err, Ok
from hl7spine.core.settings import Hl7SpineSettings
from hl7spine.framework.classifier import ErrorClassifier
from hl7spine.framework.parser import Hl7Parser
from hl7spine.framework.processor import (
    PARSE_FAILURE_SUMMARY,
    UNEXPECTED_FAILURE_SUMMARY,
    BatchSummary,
    QueueProcessor,
)
from hl7spine.framework.router import MessageRouter
from hl7spine.wiring import build_pipeline

REMOTE_SOURCE = "remote-lab"


def _enqueue(pipeline, raw_data: str, source_name: str):
    source = pipeline.queue.resolve_source(source_name)
    entry = pipeline.queue.enqueue(raw_data, source.id, "K1")
    pipeline.session.commit()
    return entry


def _counts(pipeline) -> tuple[int, int, int]:
    return pipeline.queue.count(), pipeline.archive.count(), pipeline.errors.count()


@pytest.fixture
def lenient_pipeline(session, patient):
    """Pipeline that drops unresolvable patients from non-local sources."""
    settings = Hl7SpineSettings(
        database_url="sqlite:///:memory:",
        ignore_missing_nonlocal_patients=True,
        _env_file=None,
    )
    return build_pipeline(session, settings)


class ExplodingParser:
    def parse(self, raw_data: str):
        raise RuntimeError("parser crashed")


class CrashingHandler:
    def process_message(self, message):
        raise KeyError("concept map")


class UnavailableErrorStore:
    def save(self, entry):
        raise RuntimeError("error store unavailable")


def _processor(pipeline, settings, **overrides) -> QueueProcessor:
    parts = {
        "queue": pipeline.queue,
        "archive": pipeline.archive,
        "errors": pipeline.errors,
        "parser": Hl7Parser(),
        "router": pipeline.router,
        "classifier": ErrorClassifier(settings),
    }
    parts.update(overrides)
    return QueueProcessor(**parts, transaction=pipeline.session, settings=settings)


class TestSuccess:
    def test_archived(self, pipeline, enqueue_message, oru_r01_message):
        entry = enqueue_message(oru_r01_message)

        result = pipeline.processor.process(entry)

        assert isinstance(result, Ok)
        report = result.value
        assert report.outcome is Outcome.ARCHIVED
        assert report.archive_entry_id is not None
        assert _counts(pipeline) == (0, 1, 0)
        archived = pipeline.archive.get(report.archive_entry_id)
        assert archived.raw_data == oru_r01_message
        assert archived.source_key == "K1"

    def test_value_group_written(self, pipeline, enqueue_message, oru_r01_message, patient):
        report = pipeline.processor.process(enqueue_message(oru_r01_message)).unwrap()

        contact = pipeline.observations.list_for_patient(patient.id, concept_id=1558)
        assert len(contact) == 2
        anchor = contact[0]
        assert {o.value_group_id for o in contact} == {anchor.id}
        assert report.handler_result.value_group_ids == [anchor.id]

        [visit] = pipeline.observations.list_for_patient(patient.id, concept_id=5096)
        assert visit.value_group_id is None

    def test_sub_id_group_written(self, pipeline, enqueue_message, oru_r01_sub_id_message, patient):
        pipeline.processor.process(enqueue_message(oru_r01_sub_id_message))

        contact = pipeline.observations.list_for_patient(patient.id, concept_id=1558)
        assert [o.value_coded for o in contact] == [1555, 1726]
        assert contact[0].is_group_anchor
        assert contact[1].value_group_id == contact[0].id
        [weight] = pipeline.observations.list_for_patient(patient.id, concept_id=5089)
        assert weight.value_numeric == 61.5
        assert weight.value_group_id is None


class TestSkippable:
    def test_remote_missing_patient_skipped(self, lenient_pipeline, unknown_patient_message):
        entry = _enqueue(lenient_pipeline, unknown_patient_message, REMOTE_SOURCE)

        report = lenient_pipeline.processor.process(entry).unwrap()

        assert report.outcome is Outcome.SKIPPED
        assert _counts(lenient_pipeline) == (0, 0, 0)

    def test_local_missing_patient_still_errors(self, lenient_pipeline, unknown_patient_message):
        entry = _enqueue(lenient_pipeline, unknown_patient_message, "local")

        report = lenient_pipeline.processor.process(entry).unwrap()

        assert report.outcome is Outcome.ERRORED
        assert _counts(lenient_pipeline) == (0, 0, 1)

    def test_flag_disabled_errors(self, pipeline, enqueue_message, unknown_patient_message):
        entry = enqueue_message(unknown_patient_message, REMOTE_SOURCE)

        report = pipeline.processor.process(entry).unwrap()

        assert report.outcome is Outcome.ERRORED
        stored = pipeline.errors.get(report.error_entry_id)
        assert stored.error == PARSE_FAILURE_SUMMARY.format(key="K1")
        assert stored.source_name == REMOTE_SOURCE
        assert "PatientNotResolvedError" in stored.error_details


class TestFatal:
    def test_no_route(self, pipeline, enqueue_message, adt_a04_message):
        report = pipeline.processor.process(enqueue_message(adt_a04_message, source_key="adt-1")).unwrap()

        assert report.outcome is Outcome.ERRORED
        stored = pipeline.errors.get(report.error_entry_id)
        assert stored.error == "Trouble parsing HL7 message (adt-1)"
        assert "No route for hl7 message: ADT_A04" in stored.error_details
        assert stored.raw_data == adt_a04_message
        assert _counts(pipeline) == (0, 0, 1)

    def test_unparseable(self, pipeline, enqueue_message):
        report = pipeline.processor.process(enqueue_message("not an hl7 message")).unwrap()
        assert report.outcome is Outcome.ERRORED
        assert pipeline.errors.get(report.error_entry_id).error == PARSE_FAILURE_SUMMARY.format(key="K1")

    def test_unexpected_failure(self, pipeline, enqueue_message, settings, oru_r01_message):
        processor = _processor(pipeline, settings, parser=ExplodingParser())

        report = processor.process(enqueue_message(oru_r01_message)).unwrap()

        stored = pipeline.errors.get(report.error_entry_id)
        assert stored.error == UNEXPECTED_FAILURE_SUMMARY.format(key="K1")
        assert "RuntimeError: parser crashed" in stored.error_details

    def test_handler_fault_summary(self, pipeline, enqueue_message, settings, oru_r01_message):
        router = MessageRouter()
        router.register_handler("ORU", "R01", CrashingHandler())
        processor = _processor(pipeline, settings, router=router.seal())

        report = processor.process(enqueue_message(oru_r01_message)).unwrap()

        assert report.outcome is Outcome.ERRORED
        stored = pipeline.errors.get(report.error_entry_id)
        assert stored.error == UNEXPECTED_FAILURE_SUMMARY.format(key="K1")
        assert "HandlerError" in stored.error_details
        assert "KeyError" in stored.error_details

    def test_error_store_failure_leaves_entry_processing(
        self, pipeline, enqueue_message, settings, adt_a04_message
    ):
        entry = enqueue_message(adt_a04_message)
        processor = _processor(pipeline, settings, errors=UnavailableErrorStore())

        with pytest.raises(RuntimeError, match="error store unavailable"):
            processor.process(entry)

        assert pipeline.queue.get(entry.id).state is MessageState.PROCESSING
        assert pipeline.queue.next_pending() is None
        assert _counts(pipeline) == (1, 0, 0)

    def test_handler_failure_leaves_no_partial_writes(
        self, pipeline, enqueue_message, oru_r01_sub_id_message, patient
    ):
        broken = oru_r01_sub_id_message.replace("|61.5|", "|heavy|")

        report = pipeline.processor.process(enqueue_message(broken)).unwrap()

        assert report.outcome is Outcome.ERRORED
        assert pipeline.observations.list_for_patient(patient.id) == []
        assert _counts(pipeline) == (0, 0, 1)

    def test_detail_bounded(self, session, patient, enqueue_message, adt_a04_message):
        settings = Hl7SpineSettings(error_detail_max_length=200, _env_file=None)
        pipeline = build_pipeline(session, settings)

        report = pipeline.processor.process(enqueue_message(adt_a04_message)).unwrap()

        assert len(pipeline.errors.get(report.error_entry_id).error_details) <= 200


class TestDuplicate:
    def test_already_processing_rejected(self, pipeline, enqueue_message, oru_r01_message):
        entry = enqueue_message(oru_r01_message)
        entry.state = MessageState.PROCESSING

        result = pipeline.processor.process(entry)

        assert isinstance(result, Err)
        assert isinstance(result.error, DuplicateProcessingError)
        assert _counts(pipeline) == (1, 0, 0)
        assert pipeline.queue.get(entry.id).state is MessageState.PENDING

    def test_lost_claim_rejected(self, pipeline, enqueue_message, oru_r01_message, patient):
        entry = enqueue_message(oru_r01_message)
        stale = pipeline.queue.get(entry.id)
        assert pipeline.queue.claim(entry)
        pipeline.session.commit()

        result = pipeline.processor.process(stale)

        assert isinstance(result, Err)
        assert isinstance(result.error, DuplicateProcessingError)
        assert _counts(pipeline) == (1, 0, 0)
        assert pipeline.observations.list_for_patient(patient.id) == []

    def test_none_rejected(self, pipeline):
        with pytest.raises(ValueError):
            pipeline.processor.process(None)


class TestProcessPending:
    def test_batch(self, pipeline, enqueue_message, oru_r01_message, adt_a04_message, unknown_patient_message):
        enqueue_message(oru_r01_message, source_key="a")
        enqueue_message(adt_a04_message, source_key="b")
        enqueue_message(unknown_patient_message, source_key="c")

        summary = pipeline.processor.process_pending()

        assert summary.to_dict() == {
            "archived": 1,
            "skipped": 0,
            "errored": 2,
            "rejected": 0,
            "processed": 3,
        }
        assert _counts(pipeline) == (0, 1, 2)

    def test_limit(self, pipeline, enqueue_message, oru_r01_message):
        for key in ("a", "b", "c"):
            enqueue_message(oru_r01_message, source_key=key)

        summary = pipeline.processor.process_pending(limit=2)

        assert summary.archived == 2
        assert pipeline.queue.count() == 1

    def test_empty_queue(self, pipeline):
        assert pipeline.processor.process_pending() == BatchSummary()

    def test_record_rejection(self):
        summary = BatchSummary()
        summary.record(Err(DuplicateProcessingError(1)))
        assert summary.rejected == 1
        assert summary.processed == 0
