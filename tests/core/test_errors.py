"""Tests for hl7spine.core.errors module."""

import pytest

from hl7spine.core.errors import (
    ConfigError,
    DuplicateProcessingError,
    ErrorContext,
    ErrorKind,
    HandlerError,
    Hl7Error,
    Hl7SpineError,
    MessageParseError,
    NoRouteError,
    PatientNotResolvedError,
    SubmissionError,
    UnclassifiedError,
    as_hl7spine_error,
)


class TestErrorKinds:
    """Each error class carries the kind the processor acts on."""

    @pytest.mark.parametrize(
        "error, kind",
        [
            (DuplicateProcessingError(1, "K1"), ErrorKind.DUPLICATE_PROCESSING),
            (ConfigError("bad key"), ErrorKind.CONFIG),
            (SubmissionError("unreadable"), ErrorKind.CONFIG),
            (Hl7Error("bad OBX"), ErrorKind.PARSE),
            (MessageParseError("garbage"), ErrorKind.PARSE),
            (PatientNotResolvedError(), ErrorKind.PARSE),
            (NoRouteError("ADT_A04"), ErrorKind.NO_ROUTE),
            (HandlerError("boom"), ErrorKind.HANDLER),
            (UnclassifiedError("?"), ErrorKind.UNCLASSIFIED),
            (Hl7SpineError("?"), ErrorKind.UNCLASSIFIED),
        ],
    )
    def test_default_kind(self, error, kind):
        assert error.kind is kind

    def test_kind_override(self):
        error = Hl7SpineError("x", kind=ErrorKind.HANDLER)
        assert error.kind is ErrorKind.HANDLER

    def test_no_route_message_names_type(self):
        error = NoRouteError("ADT_A04")
        assert "No route for hl7 message: ADT_A04" in str(error)
        assert error.context.message_name == "ADT_A04"

    def test_patient_not_resolved_default_message(self):
        assert str(PatientNotResolvedError()) == "Could not resolve patient"

    def test_duplicate_processing_context(self):
        error = DuplicateProcessingError(42, "ABC")
        assert error.queue_id == 42
        assert error.context.queue_id == 42
        assert error.context.source_key == "ABC"


class TestCauseChain:
    """caused_by walks the chain instead of matching message text."""

    def test_direct_cause(self):
        wrapped = Hl7Error("Error while processing HL7 message: ORU_R01", cause=PatientNotResolvedError())
        assert wrapped.caused_by(PatientNotResolvedError)

    def test_nested_cause(self):
        inner = Hl7Error("inner", cause=PatientNotResolvedError())
        outer = Hl7Error("outer", cause=inner)
        assert outer.caused_by(PatientNotResolvedError)
        assert [type(c) for c in outer.iter_causes()] == [Hl7Error, PatientNotResolvedError]

    def test_python_cause_followed(self):
        try:
            try:
                raise KeyError("k")
            except KeyError as e:
                raise ValueError("v") from e
        except ValueError as e:
            error = Hl7Error("outer", cause=e)
        assert error.caused_by(KeyError)

    def test_same_message_without_type_is_not_a_match(self):
        error = Hl7Error("outer", cause=RuntimeError("Could not resolve patient"))
        assert not error.caused_by(PatientNotResolvedError)

    def test_cycle_terminates(self):
        a = Hl7Error("a")
        b = Hl7Error("b", cause=a)
        a.cause = b
        assert len(list(a.iter_causes())) == 1

    def test_cause_sets_dunder_cause(self):
        root = KeyError("k")
        assert Hl7Error("x", cause=root).__cause__ is root


class TestErrorContext:
    def test_to_dict_skips_none(self):
        assert ErrorContext(queue_id=7, source_name="remote-lab").to_dict() == {
            "queue_id": 7,
            "source_name": "remote-lab",
        }

    def test_with_context_known_and_metadata(self):
        error = Hl7Error("x").with_context(queue_id=3, segment="OBX")
        assert error.context.queue_id == 3
        assert error.context.metadata == {"segment": "OBX"}

    def test_to_dict(self):
        error = Hl7Error("x", cause=KeyError("k")).with_context(queue_id=3)
        data = error.to_dict()
        assert data["error_type"] == "Hl7Error"
        assert data["kind"] == "PARSE"
        assert data["context"] == {"queue_id": 3}
        assert data["cause"].startswith("KeyError")


class TestAsHl7SpineError:
    def test_typed_error_unchanged(self):
        error = NoRouteError("ADT_A04")
        assert as_hl7spine_error(error) is error

    def test_untyped_error_wrapped(self):
        root = ZeroDivisionError("division by zero")
        error = as_hl7spine_error(root)
        assert isinstance(error, UnclassifiedError)
        assert error.cause is root
        assert "ZeroDivisionError" in error.message
