from contextlib import asynccontextmanager

from fastapi import FastAPI

from nextqueue.announcements import SpeechAnnouncer
from nextqueue.api.routes import metrics, ping, queue
from nextqueue.core.config import get_settings
from nextqueue.core.logging import configure_logging, get_tracer, init_tracer, shutdown_tracer
from nextqueue.metrics import MetricsRegistry
from nextqueue.queueing import QueueEngine


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    if getattr(app.state, "queue_engine", None) is None:
        app.state.queue_engine = QueueEngine.from_settings(
            settings, metrics=MetricsRegistry(), tracer=get_tracer(tracer_provider)
        )
    if getattr(app.state, "announcer", None) is None:
        app.state.announcer = SpeechAnnouncer(locale=settings.speech_locale, enabled=settings.speech_enabled)
    logger.info("%s started (%s)", settings.app_name, settings.environment)
    try:
        yield
    finally:
        await app.state.announcer.drain()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(queue.router)
    app.include_router(metrics.router)
    return app


app = create_app()
