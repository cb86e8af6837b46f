"""Tests for hl7spine.framework.router."""

import pytest

from hl7spine.core.errors import ConfigError, HandlerError, Hl7Error, NoRouteError, PatientNotResolvedError
from hl7spine.core.models import HandlerResult
from hl7spine.framework.message import MessageKey, ParsedMessage
from hl7spine.framework.router import MessageRouter


class RecordingHandler:
    def __init__(self, fail_with: Exception | None = None):
        self.fail_with = fail_with
        self.seen: list[ParsedMessage] = []

    def process_message(self, message: ParsedMessage) -> HandlerResult:
        self.seen.append(message)
        if self.fail_with is not None:
            raise self.fail_with
        return HandlerResult(message_name=message.name)


@pytest.fixture
def oru():
    return ParsedMessage("ORU", "R01")


class TestRegistration:
    def test_register_and_dispatch(self, oru):
        handler = RecordingHandler()
        router = MessageRouter()
        router.register_handler("ORU", "R01", handler)

        result = router.dispatch(oru)

        assert result.message_name == "ORU_R01"
        assert handler.seen == [oru]

    def test_register_mapping(self):
        router = MessageRouter()
        router.register_handlers({"ORU_R01": RecordingHandler(), "adt_a04": RecordingHandler()})
        assert [k.name for k in router.routes()] == ["ADT_A04", "ORU_R01"]
        assert router.handler_for(MessageKey("ADT", "A04")) is not None

    @pytest.mark.parametrize("key", ["ORUR01", "ORU_R01_X", "_R01"])
    def test_malformed_key_rejected(self, key):
        router = MessageRouter()
        with pytest.raises(ConfigError):
            router.register_handlers({key: RecordingHandler()})
        assert router.routes() == []

    def test_bad_key_leaves_table_unchanged(self):
        router = MessageRouter()
        with pytest.raises(ConfigError):
            router.register_handlers({"ORU_R01": RecordingHandler(), "BROKEN": RecordingHandler()})
        assert router.routes() == []

    def test_duplicate_key_rejected(self):
        router = MessageRouter()
        router.register_handler("ORU", "R01", RecordingHandler())
        with pytest.raises(ConfigError):
            router.register_handlers({"oru_r01": RecordingHandler()})

    def test_sealed_router_refuses_registration(self):
        router = MessageRouter().seal()
        assert router.sealed
        with pytest.raises(ConfigError):
            router.register_handler("ORU", "R01", RecordingHandler())


class TestDispatch:
    def test_no_route(self):
        router = MessageRouter().seal()
        message = ParsedMessage("ADT", "A04")
        assert not router.can_route(message)
        with pytest.raises(NoRouteError) as exc_info:
            router.dispatch(message)
        assert "ADT_A04" in str(exc_info.value)

    def test_hl7_error_is_wrapped(self, oru):
        cause = PatientNotResolvedError()
        router = MessageRouter()
        router.register_handler("ORU", "R01", RecordingHandler(fail_with=cause))

        with pytest.raises(Hl7Error) as exc_info:
            router.dispatch(oru)

        error = exc_info.value
        assert error.message == "Error while processing HL7 message: ORU_R01"
        assert error.cause is cause
        assert error.caused_by(PatientNotResolvedError)

    def test_other_exception_becomes_handler_error(self, oru):
        router = MessageRouter()
        router.register_handler("ORU", "R01", RecordingHandler(fail_with=KeyError("boom")))

        with pytest.raises(HandlerError) as exc_info:
            router.dispatch(oru)
        assert isinstance(exc_info.value.cause, KeyError)
