"""
hl7spine - inbound HL7 v2 message processing.

- hl7spine.core: errors, result type, logging, settings, models, persistence
- hl7spine.framework: parser, router, correlator, classifier, queue processor
- hl7spine.cli / hl7spine.api: operator surfaces
"""

__version__ = "0.1.0"
