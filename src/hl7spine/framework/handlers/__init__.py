"""Message handlers registered with the router."""

from hl7spine.framework.handlers.oru_r01 import ValueGroupOruR01Handler

__all__ = ["ValueGroupOruR01Handler"]
