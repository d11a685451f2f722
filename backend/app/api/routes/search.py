import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_search_service
from app.api.schemas.search import SearchRequest, SearchResponse
from app.services.exceptions import QueryAnalysisError
from app.services.search_service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=SearchResponse)
async def search(
    body: SearchRequest,
    service: SearchService = Depends(get_search_service),
):
    try:
        return await service.search(
            query=body.query,
            max_results=body.max_results,
            timeout_ms=body.timeout_ms,
        )
    except QueryAnalysisError:
        logger.exception("Query analysis failed for %r", body.query)
        raise HTTPException(status_code=500, detail="Failed to analyze query")
