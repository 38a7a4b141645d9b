from __future__ import annotations

from fastapi import APIRouter, Request, Response

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    collector = request.app.state.metrics
    return Response(content=collector.render(), media_type=collector.content_type)
