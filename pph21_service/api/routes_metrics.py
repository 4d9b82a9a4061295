from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from pph21_service.core.rbac import SuperadminDep

router = APIRouter()


@router.get("/metrics")
def metrics_endpoint(_admin: SuperadminDep) -> Response:
    # Counters are incremented at event points; just expose the registry.
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
