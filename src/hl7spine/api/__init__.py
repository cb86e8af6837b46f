"""
HTTP surface for hl7spine.

``create_app`` is the uvicorn factory::

    uvicorn hl7spine.api:create_app --factory
"""

from hl7spine.api.app import create_app

__all__ = ["create_app"]
