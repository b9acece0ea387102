"""
Analysis API endpoints - extract and read structured lead information.
"""

from fastapi import APIRouter, Depends

from .deps import get_analysis_pipeline
from ..core import AnalysisPipeline
from ..models import AnalysisResponse

router = APIRouter(prefix="/api/conversation", tags=["analysis"])


@router.post("/{session_id}/analyze", response_model=AnalysisResponse)
async def analyze_conversation(
    session_id: str,
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
):
    """Run lead extraction on the stored conversation, replacing any earlier result."""
    analysis, analyzed_at = await pipeline.analyze(session_id)
    return AnalysisResponse(session_id=session_id, analysis=analysis, analyzed_at=analyzed_at)


@router.get("/{session_id}/analysis", response_model=AnalysisResponse)
async def get_conversation_analysis(
    session_id: str,
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
):
    """Last stored analysis; nulls if the conversation was never analyzed."""
    analysis, analyzed_at = await pipeline.get_analysis_record(session_id)
    return AnalysisResponse(session_id=session_id, analysis=analysis, analyzed_at=analyzed_at)
