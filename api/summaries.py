"""Summary API — restore and render news summaries."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from models.request import SummaryRenderRequest
from services.summary_renderer import SummaryView, render_summary
from services.summary_store import get_summary_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/summaries", tags=["summaries"])


@router.get("/last", response_model=SummaryView)
async def last_summary():
    """Render the last completed news summary without re-running the stream."""
    text = await get_summary_store().load_last()
    if not text:
        raise HTTPException(status_code=404, detail="No stored summary")
    return render_summary(text)


@router.delete("/last", status_code=204)
async def clear_last_summary():
    await get_summary_store().clear()


@router.post("/render", response_model=SummaryView)
async def render(req: SummaryRenderRequest):
    """Render arbitrary summary text (structured view or markdown fallback)."""
    view = render_summary(req.text)
    logger.debug(
        "Rendered summary: structured=%s sections=%d", view.structured, len(view.sections)
    )
    return view
