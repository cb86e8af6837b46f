"""HL7 v2 wire parser backed by ``hl7apy``.

``Hl7Parser.parse`` accepts ER7 (pipe-delimited) text with any of ``\\r``,
``\\n`` or ``\\r\\n`` as the segment terminator and returns a
:class:`~hl7spine.framework.message.ParsedMessage`. Parsing runs in
tolerant mode: structure is not validated against the message profile, only
the wire syntax must be readable.

Tags:
    hl7spine, framework, parser, hl7apy, er7
"""

from __future__ import annotations

import re

from hl7apy.exceptions import HL7apyException
from hl7apy.parser import parse_message

from hl7spine.core.errors import MessageParseError
from hl7spine.core.logging import get_logger
from hl7spine.framework.message import ParsedMessage, Segment, Separators

logger = get_logger(__name__)

_LINE_BREAKS = re.compile(r"\r\n|\n|\r")


def normalize_segments(raw_data: str) -> str:
    """Join non-blank lines with ``\\r``, the HL7 segment terminator."""
    lines = [line for line in _LINE_BREAKS.split(raw_data) if line.strip()]
    return "\r".join(lines)


class Hl7Parser:
    """Turns raw message text into a ``ParsedMessage``."""

    def __init__(self, find_groups: bool = False):
        self.find_groups = find_groups

    def parse(self, raw_data: str) -> ParsedMessage:
        text = normalize_segments(raw_data or "")
        if not text:
            raise MessageParseError("Empty HL7 message")
        if not text.startswith("MSH"):
            raise MessageParseError(f"HL7 message must start with an MSH segment, got {text[:3]!r}")

        try:
            message = parse_message(text, find_groups=self.find_groups)
        except (HL7apyException, ValueError) as e:
            raise MessageParseError(f"Unable to parse HL7 message: {e}", cause=e) from e

        chars = message.encoding_chars
        separators = Separators(
            field=chars.get("FIELD", "|"),
            component=chars.get("COMPONENT", "^"),
            repetition=chars.get("REPETITION", "~"),
            escape=chars.get("ESCAPE", "\\"),
            subcomponent=chars.get("SUBCOMPONENT", "&"),
        )
        segments = [self._segment(child, separators) for child in message.children]

        msh = segments[0]
        message_type = msh.component(9, 1)
        trigger_event = msh.component(9, 2)
        if not message_type or not trigger_event:
            raise MessageParseError(f"MSH-9 does not name a message type and trigger event: {msh.field(9)!r}")

        parsed = ParsedMessage(
            message_type=message_type.upper(),
            trigger_event=trigger_event.upper(),
            control_id=msh.text(10),
            version=msh.component(12, 1),
            segments=segments,
            separators=separators,
        )
        logger.debug(
            "message.parsed",
            message_name=parsed.name,
            control_id=parsed.control_id,
            segments=len(segments),
        )
        return parsed

    @staticmethod
    def _segment(element, separators: Separators) -> Segment:
        segment = Segment(name=element.name, separators=separators)
        for child in element.children:
            # hl7apy names fields "<SEG>_<n>"; repetitions share a name
            number = _field_number(child.name)
            if number is None:
                continue
            segment.fields.setdefault(number, []).append(child.to_er7())
        return segment


def _field_number(name: str | None) -> int | None:
    if not name or "_" not in name:
        return None
    suffix = name.rsplit("_", 1)[1]
    return int(suffix) if suffix.isdigit() else None


__all__ = ["Hl7Parser", "normalize_segments"]
