from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from nextqueue.announcements import SpeechAnnouncer
from nextqueue.metrics import MetricsRegistry
from nextqueue.queueing import QueueEngine


async def get_queue_engine(request: Request) -> QueueEngine:
    engine = getattr(request.app.state, "queue_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Queue engine is not configured")
    return engine


async def get_announcer(request: Request) -> SpeechAnnouncer:
    announcer = getattr(request.app.state, "announcer", None)
    if announcer is None:
        return SpeechAnnouncer(enabled=False)
    return announcer


async def get_metrics_registry(engine: Annotated[QueueEngine, Depends(get_queue_engine)]) -> MetricsRegistry:
    return engine.metrics


QueueEngineDep = Annotated[QueueEngine, Depends(get_queue_engine)]
AnnouncerDep = Annotated[SpeechAnnouncer, Depends(get_announcer)]
MetricsRegistryDep = Annotated[MetricsRegistry, Depends(get_metrics_registry)]
