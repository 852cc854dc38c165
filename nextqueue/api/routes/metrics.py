from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from nextqueue.dependencies.queue import MetricsRegistryDep
from nextqueue.metrics import PrometheusExporter

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", response_class=PlainTextResponse, summary="Prometheus text exposition")
async def export_metrics(registry: MetricsRegistryDep) -> str:
    return PrometheusExporter(registry).export()
