"""
FastAPI dependency injection -- settings singleton and per-request pipeline.

Usage in routers::

    from hl7spine.api.deps import PipelineDep, SettingsDep

    @router.get("/things")
    def list_things(pipeline: PipelineDep, settings: SettingsDep):
        ...
"""

from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from hl7spine.core.settings import Hl7SpineSettings
from hl7spine.wiring import Pipeline, open_pipeline

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> Hl7SpineSettings:
    """Cached settings -- loaded once per process."""
    return Hl7SpineSettings()


# ── Pipeline (per-request) ───────────────────────────────────────────────


def get_pipeline(
    settings: Annotated[Hl7SpineSettings, Depends(get_settings)],
) -> Generator[Pipeline, None, None]:
    """Yield a pipeline bound to a fresh session for the request lifespan."""
    with open_pipeline(settings) as pipeline:
        yield pipeline


SettingsDep = Annotated[Hl7SpineSettings, Depends(get_settings)]
PipelineDep = Annotated[Pipeline, Depends(get_pipeline)]
