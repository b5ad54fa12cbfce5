import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from ...core.config import settings
from ...core.context import RequestContext
from ...core.errors import PipelineError
from ...schemas.query import ErrorResponse, QueryRequest, QueryResponse
from ...services.charts import GRAPH_TYPES
from ...services.pipeline import QueryPipeline, get_pipeline

log = logging.getLogger(__name__)

router = APIRouter()

async def _cancel_on_disconnect(request: Request, ctx: RequestContext, interval: float = 0.5):
    while not ctx.cancelled:
        if await request.is_disconnected():
            log.info("client disconnected, cancelling request")
            ctx.cancel()
            return
        await asyncio.sleep(interval)

@router.post(
    "/generate-query",
    response_model=QueryResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate_query(
    body: QueryRequest, request: Request, pipeline: QueryPipeline = Depends(get_pipeline)
):
    if not body.prompt.strip():
        raise HTTPException(status_code=400, detail="prompt is required")

    ctx = RequestContext(settings.REQUEST_TIMEOUT)
    watcher = asyncio.create_task(_cancel_on_disconnect(request, ctx))
    try:
        result = await asyncio.to_thread(pipeline.run, body.prompt, body.intent, ctx)
    except PipelineError as e:
        return JSONResponse(status_code=e.status_code, content={"error": str(e)})
    finally:
        watcher.cancel()
        ctx.cancel()

    return QueryResponse(
        sql=result.sql,
        data=result.rows,
        graph_types=GRAPH_TYPES,
        chart_config=result.chart_config,
        chart_options=result.chart_options,
    )
