"""Parser-independent view of an inbound HL7 v2 message.

The parser turns wire text into a ``ParsedMessage``; routing and handlers
only ever see these types. Field numbering follows the HL7 convention
(``MSH-9`` is field 9 of the MSH segment, components are 1-based).

Tags:
    hl7spine, framework, message, segments, obx

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, timezone
from functools import cached_property

from hl7spine.core.errors import ConfigError, Hl7Error


@dataclass(frozen=True, slots=True)
class MessageKey:
    """Routing key: message type plus trigger event (``ORU`` / ``R01``).

    Examples:
        >>> MessageKey.parse("oru_r01")
        MessageKey(message_type='ORU', trigger_event='R01')
        >>> MessageKey("ORU", "R01").name
        'ORU_R01'
    """

    message_type: str
    trigger_event: str

    def __post_init__(self) -> None:
        if not self.message_type or not self.trigger_event:
            raise ConfigError(
                f"Message type and trigger event are both required (got {self.message_type!r}, "
                f"{self.trigger_event!r})"
            )
        object.__setattr__(self, "message_type", self.message_type.strip().upper())
        object.__setattr__(self, "trigger_event", self.trigger_event.strip().upper())

    @classmethod
    def parse(cls, key: str) -> MessageKey:
        """Parse a ``<type>_<trigger>`` registration key.

        Raises:
            ConfigError: unless the key splits into exactly two non-empty parts.
        """
        parts = key.split("_")
        if len(parts) != 2 or not all(p.strip() for p in parts):
            raise ConfigError(
                f"Invalid handler key {key!r}: expected '<messageType>_<triggerEvent>', e.g. 'ORU_R01'"
            )
        return cls(parts[0], parts[1])

    @property
    def name(self) -> str:
        return f"{self.message_type}_{self.trigger_event}"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Separators:
    field: str = "|"
    component: str = "^"
    repetition: str = "~"
    escape: str = "\\"
    subcomponent: str = "&"

    def unescape(self, text: str) -> str:
        """Decode the delimiter escapes (``\\F\\ \\S\\ \\T\\ \\R\\ \\E\\``).

        Highlighting, hex and locally defined escapes are left as they are.
        """
        if not self.escape or self.escape not in text:
            return text
        decoded = {
            "F": self.field,
            "S": self.component,
            "T": self.subcomponent,
            "R": self.repetition,
            "E": self.escape,
        }
        esc = re.escape(self.escape)
        return re.sub(f"{esc}([FSTRE]){esc}", lambda m: decoded[m.group(1)], text)


@dataclass(frozen=True, slots=True)
class CodedValue:
    """A CE/CWE style coded element: identifier, text, coding system."""

    code: str
    text: str = ""
    system: str = ""

    @classmethod
    def parse(cls, value: str, separators: Separators = Separators()) -> CodedValue:
        """Split ER7 ``value`` into components and decode each one."""
        parts = [separators.unescape(part) for part in value.split(separators.component)]
        parts += [""] * (3 - len(parts))
        return cls(code=parts[0], text=parts[1], system=parts[2])

    def __str__(self) -> str:
        return self.code if not self.text else f"{self.code}^{self.text}"


@dataclass
class Segment:
    """One segment: its name and its fields as lists of repetitions.

    ``fields`` keeps the encoded ER7 text so separators stay positional;
    ``text`` and ``component`` return decoded values.
    """

    name: str
    fields: dict[int, list[str]] = field(default_factory=dict)
    separators: Separators = field(default_factory=Separators)

    def repetitions(self, number: int) -> list[str]:
        return list(self.fields.get(number, []))

    def field(self, number: int) -> str:
        """First repetition of field ``number`` or ``""``."""
        reps = self.fields.get(number)
        return reps[0] if reps else ""

    def text(self, number: int, repetition: int = 0) -> str:
        """Whole repetition of a primitive field, escapes decoded."""
        reps = self.fields.get(number) or []
        if repetition >= len(reps):
            return ""
        return self.separators.unescape(reps[repetition])

    def component(self, number: int, component: int = 1, repetition: int = 0) -> str:
        reps = self.fields.get(number) or []
        if repetition >= len(reps):
            return ""
        parts = reps[repetition].split(self.separators.component)
        if component > len(parts):
            return ""
        return self.separators.unescape(parts[component - 1])


@dataclass(frozen=True, slots=True)
class ResultSegment:
    """One atomic reported value taken from an OBX segment.

    An OBX whose value field repeats yields one ``ResultSegment`` per
    repetition. ``position`` is the 1-based order of the value within the
    whole message; ``segment_index`` is the 1-based order of its OBX.
    ``value`` is the ER7 text of the repetition; ``text`` is that value with
    its escapes decoded.
    """

    position: int
    segment_index: int
    set_id: str
    value_type: str
    concept: CodedValue
    sub_id: str
    value: str
    repetition: int = 0
    observed_at: str = ""
    separators: Separators = Separators()

    @property
    def text(self) -> str:
        return self.separators.unescape(self.value)

    @property
    def coded_value(self) -> CodedValue:
        return CodedValue.parse(self.value, self.separators)


@dataclass
class ParsedMessage:
    """A parsed inbound message."""

    message_type: str
    trigger_event: str
    control_id: str = ""
    version: str = ""
    segments: list[Segment] = field(default_factory=list)
    separators: Separators = field(default_factory=Separators)

    @property
    def key(self) -> MessageKey:
        return MessageKey(self.message_type, self.trigger_event)

    @property
    def name(self) -> str:
        """``<type>_<trigger>`` name used in logs and error messages."""
        return f"{self.message_type}_{self.trigger_event}"

    def segment(self, name: str) -> Segment | None:
        """First segment called ``name``."""
        for seg in self.segments:
            if seg.name == name:
                return seg
        return None

    def all_segments(self, name: str) -> list[Segment]:
        return [seg for seg in self.segments if seg.name == name]

    @cached_property
    def results(self) -> list[ResultSegment]:
        """Every OBX value in message order."""
        results: list[ResultSegment] = []
        for index, obx in enumerate(self.all_segments("OBX"), start=1):
            concept = CodedValue.parse(obx.field(3), self.separators)
            values = obx.repetitions(5) or [""]
            for repetition, value in enumerate(values):
                results.append(
                    ResultSegment(
                        position=len(results) + 1,
                        segment_index=index,
                        set_id=obx.text(1),
                        value_type=obx.text(2).upper(),
                        concept=concept,
                        sub_id=obx.text(4),
                        value=value,
                        repetition=repetition,
                        observed_at=obx.component(14),
                        separators=self.separators,
                    )
                )
        return results


_TS_PATTERN = re.compile(
    r"^(?P<y>\d{4})(?P<mo>\d{2})?(?P<d>\d{2})?(?P<h>\d{2})?(?P<mi>\d{2})?(?P<s>\d{2})?"
    r"(?:\.\d{1,4})?(?P<tz>[+-]\d{4})?$"
)


def parse_hl7_datetime(value: str) -> datetime | None:
    """Parse an HL7 DT/TS/DTM value (``YYYY[MM[DD[HH[MM[SS[.S]]]]]][+/-ZZZZ]``).

    Returns None for an empty value. Values without an offset are taken as
    UTC; the result is always UTC.

    Raises:
        Hl7Error: when the value is not a valid HL7 date/time.
    """
    value = value.strip()
    if not value:
        return None
    match = _TS_PATTERN.match(value)
    if match is None:
        raise Hl7Error(f"Invalid HL7 date/time: {value!r}")
    parts = match.groupdict()
    tz = UTC
    if parts["tz"]:
        sign = -1 if parts["tz"][0] == "-" else 1
        offset = timedelta(hours=int(parts["tz"][1:3]), minutes=int(parts["tz"][3:5]))
        tz = timezone(sign * offset)
    try:
        parsed = datetime(
            int(parts["y"]),
            int(parts["mo"] or 1),
            int(parts["d"] or 1),
            int(parts["h"] or 0),
            int(parts["mi"] or 0),
            int(parts["s"] or 0),
            tzinfo=tz,
        )
    except ValueError as e:
        raise Hl7Error(f"Invalid HL7 date/time: {value!r}", cause=e) from e
    return parsed.astimezone(UTC)


__all__ = [
    "MessageKey",
    "Separators",
    "CodedValue",
    "Segment",
    "ResultSegment",
    "ParsedMessage",
    "parse_hl7_datetime",
]
