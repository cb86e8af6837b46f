"""Tests for hl7spine.framework.diagnostics."""

from hl7spine.core.errors import Hl7Error, PatientNotResolvedError
from hl7spine.framework.diagnostics import (
    is_library_frame,
    iter_exception_chain,
    render_failure_detail,
    truncate,
)


def _raise_chain() -> Hl7Error:
    try:
        try:
            raise PatientNotResolvedError()
        except PatientNotResolvedError as inner:
            raise Hl7Error("Error while processing HL7 message: ORU_R01", cause=inner) from inner
    except Hl7Error as outer:
        return outer


class TestChain:
    def test_outermost_first(self):
        error = _raise_chain()
        chain = list(iter_exception_chain(error))
        assert [type(e) for e in chain] == [Hl7Error, PatientNotResolvedError]

    def test_implicit_context_followed(self):
        try:
            try:
                raise KeyError("inner")
            except KeyError:
                raise RuntimeError("outer")
        except RuntimeError as e:
            chain = list(iter_exception_chain(e))
        assert [type(e) for e in chain] == [RuntimeError, KeyError]


class TestRender:
    def test_includes_causes(self):
        detail = render_failure_detail(_raise_chain())
        assert detail.startswith("hl7spine.core.errors.Hl7Error: Error while processing HL7 message: ORU_R01")
        assert "Caused by: hl7spine.core.errors.PatientNotResolvedError: Could not resolve patient" in detail
        assert "test_diagnostics.py" in detail

    def test_bounded(self):
        error = Hl7Error("x" * 5000, cause=ValueError("y" * 5000))
        detail = render_failure_detail(error, max_length=500)
        assert len(detail) <= 500
        assert "[truncated," in detail


class TestHelpers:
    def test_library_frames(self):
        assert is_library_frame("/usr/lib/python3/site-packages/hl7apy/parser.py")
        assert is_library_frame("/usr/lib/python3/dist-packages/sqlalchemy/orm/session.py")
        assert not is_library_frame("/srv/hl7spine/src/hl7spine/framework/router.py")

    def test_truncate(self):
        assert truncate("short", 100) == "short"
        clipped = truncate("a" * 1000, 100)
        assert len(clipped) == 100
        assert clipped.endswith("[truncated, 1000 characters total]")
