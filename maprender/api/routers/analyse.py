"""CSV analysis endpoint."""

import asyncio

from fastapi import APIRouter, HTTPException

from ...models.analyse import AnalyseRequest, AnalyseResponse
from ...services.analyse_service import AnalyseError, analyse

router = APIRouter()


@router.post("/analyse", response_model=AnalyseResponse)
async def analyse_data(request: AnalyseRequest):
    """Check a csv file against a topology and suggest natural breaks."""
    try:
        return await asyncio.to_thread(analyse, request)
    except AnalyseError as e:
        raise HTTPException(status_code=400, detail=str(e))
