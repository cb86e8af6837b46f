"""hl7spine framework -- the inbound processing pipeline.

Architecture::

    submission.py   raw text / upload → hl7_in_queue
    processor.py    QueueProcessor: claim, parse, dispatch, finalize
    parser.py       Hl7Parser (hl7apy) → ParsedMessage
    router.py       MessageRouter: (type, trigger) → handler
    correlator.py   ValueGroupCorrelator: linked observation groups
    classifier.py   ErrorClassifier: skippable vs fatal
    diagnostics.py  bounded failure detail for the error store
    worker.py       QueuePoller
    handlers/       ORU^R01 value-group handler
"""

from hl7spine.framework.classifier import ErrorClassifier
from hl7spine.framework.correlator import ValueGroupCorrelator
from hl7spine.framework.message import MessageKey, ParsedMessage, ResultSegment
from hl7spine.framework.parser import Hl7Parser
from hl7spine.framework.processor import BatchSummary, QueueProcessor
from hl7spine.framework.router import MessageRouter

__all__ = [
    "ErrorClassifier",
    "ValueGroupCorrelator",
    "MessageKey",
    "ParsedMessage",
    "ResultSegment",
    "Hl7Parser",
    "BatchSummary",
    "QueueProcessor",
    "MessageRouter",
]
