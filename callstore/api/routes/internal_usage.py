"""Internal Usage Routes — per-tenant usage summaries.

Invariants:
    - from/to are calendar dates (YYYY-MM-DD); both must be given to use them,
      otherwise the configured default window ending now applies
    - An unknown tenant or an empty window returns zeros with 200
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from callstore.api.dependencies import CallServices, get_services

router = APIRouter(prefix="/internal/usage", tags=["usage"])


@router.get("/summary")
async def usage_summary(
    tenant_id: str = Query(..., min_length=1),
    from_date: date | None = Query(None, alias="from"),
    to_date: date | None = Query(None, alias="to"),
    services: CallServices = Depends(get_services),
):
    summary = await services.aggregator.summarize(tenant_id, from_date, to_date)
    return {"ok": True, **summary.model_dump(mode="json", by_alias=True)}
