"""FastAPI endpoints for feedback quality analytics."""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from ..analytics.export import ExportUnavailableError
from ..analytics.facade import AnalyticsFacade
from ..database.connection import DatabaseManager
from ..models.common import AnalyticsFilter
from ..models.validation import AnalyticsQueryValidator, InvalidTimeframeError


logger = logging.getLogger(__name__)


class AnalyzeRequest(BaseModel):
    """Request model for local feedback text analysis."""
    content: str = Field(..., min_length=1, max_length=10000, description="Feedback text")

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError("content must not be blank")
        return v


class AnalyzeResponse(BaseModel):
    """Heuristic quality metrics for one piece of feedback."""
    specificity_score: float
    actionability_score: float
    novelty_score: float
    sentiment: float
    category: str
    subcategory: str


def analytics_query(
    project_id: Optional[str] = Query(None, description="Restrict to one project"),
    user_id: Optional[str] = Query(None, description="Restrict to one feedback provider"),
    timeframe: Optional[str] = Query(None, description="Named timeframe, e.g. 30days or lastMonth"),
    start: Optional[datetime] = Query(None, description="Explicit range start (ISO 8601)"),
    end: Optional[datetime] = Query(None, description="Explicit range end (ISO 8601)"),
    category_ids: Optional[List[str]] = Query(None, description="Managed category ids"),
    quality_threshold: Optional[float] = Query(None, description="Minimum composite quality"),
) -> AnalyticsQueryValidator:
    """Validate analytics query parameters, mapping failures to HTTP 422."""
    try:
        return AnalyticsQueryValidator(
            project_id=project_id,
            user_id=user_id,
            timeframe=timeframe,
            start=start,
            end=end,
            category_ids=category_ids,
            quality_threshold=quality_threshold,
        )
    except PydanticValidationError as e:
        raise HTTPException(status_code=422, detail=[err['msg'] for err in e.errors()])


class AnalyticsAPI:
    """FastAPI application serving analytics from an AnalyticsFacade."""

    def __init__(self, facade: AnalyticsFacade, db_manager: Optional[DatabaseManager] = None,
                 lifespan: Optional[Callable] = None):
        self.facade = facade
        self.db_manager = db_manager
        self.app = FastAPI(
            title="Feedback Quality Analytics API",
            description="Quality, sentiment and volume analytics over collected feedback",
            version="1.0.0",
            lifespan=lifespan
        )
        self._setup_routes()

    def _setup_routes(self):
        """Set up API routes."""

        @self.app.get("/analytics")
        async def get_analytics(
            query: AnalyticsQueryValidator = Depends(analytics_query),
            bypass_cache: bool = Query(False, description="Skip the cache and recompute")
        ):
            """Get quality analytics for one window."""
            analytics_filter = self._build_filter(query)
            result = await self.facade.get_feedback_analytics(analytics_filter, bypass_cache=bypass_cache)
            return result.to_dict()

        @self.app.get("/analytics/comparison")
        async def get_comparison(
            query: AnalyticsQueryValidator = Depends(analytics_query),
            comparison_days: Optional[int] = Query(
                None, ge=1, le=365,
                description="Window size when no timeframe is given; defaults to the configured value"
            )
        ):
            """Compare a window with the window of the same length before it."""
            analytics_filter = self._build_filter(
                query, default_days=comparison_days or self.facade.comparison_days
            )
            result = await self.facade.get_comparison_analytics(analytics_filter)
            return result.to_dict()

        @self.app.get("/analytics/export/csv", response_class=PlainTextResponse)
        async def export_csv(query: AnalyticsQueryValidator = Depends(analytics_query)):
            """Export the analytics summary as a CSV data URI."""
            result = await self.facade.get_feedback_analytics(self._build_filter(query))
            return self.facade.export_csv(result)

        @self.app.get("/analytics/export/pdf")
        async def export_pdf(query: AnalyticsQueryValidator = Depends(analytics_query)):
            """Export the analytics summary as PDF."""
            result = await self.facade.get_feedback_analytics(self._build_filter(query))
            try:
                return self.facade.export_pdf(result)
            except ExportUnavailableError as e:
                raise HTTPException(status_code=501, detail=str(e))

        @self.app.post("/feedback/analyze", response_model=AnalyzeResponse)
        async def analyze_feedback(request: AnalyzeRequest):
            """Score a piece of feedback text with the local heuristics."""
            analysis = await self.facade.analyze_feedback(request.content)
            return AnalyzeResponse(
                specificity_score=analysis.specificity_score,
                actionability_score=analysis.actionability_score,
                novelty_score=analysis.novelty_score,
                sentiment=analysis.sentiment,
                category=analysis.category,
                subcategory=analysis.subcategory,
            )

        @self.app.get("/cache/stats")
        async def cache_stats():
            """Get request cache statistics."""
            return self.facade.cache_stats()

        @self.app.delete("/cache")
        async def invalidate_cache(
            project_id: Optional[str] = Query(None, description="Only drop this project's entries")
        ):
            """Invalidate cached analytics."""
            removed = self.facade.invalidate(project_id)
            return JSONResponse(
                status_code=200,
                content={"message": f"Invalidated {removed} cached entries", "removed": removed}
            )

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            database_ok = self.db_manager.health_check() if self.db_manager else None
            status = "unhealthy" if database_ok is False else "healthy"
            return {
                "status": status,
                "database": database_ok,
                "cache": self.facade.cache_stats(),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

    def _build_filter(self, query: AnalyticsQueryValidator,
                      default_days: Optional[int] = None) -> AnalyticsFilter:
        """Resolve validated query parameters into a filter, or fail with 422."""
        try:
            return self.facade.build_filter(
                query.to_request(),
                project_id=query.project_id,
                user_id=query.user_id,
                category_ids=query.category_ids,
                quality_threshold=query.quality_threshold,
                default_days=default_days,
            )
        except InvalidTimeframeError as e:
            logger.warning(f"Rejected analytics query: {e}")
            raise HTTPException(status_code=422, detail=str(e))


def create_analytics_api(facade: AnalyticsFacade, db_manager: Optional[DatabaseManager] = None,
                         lifespan: Optional[Callable] = None) -> FastAPI:
    """Create and configure the analytics API application."""
    analytics_api = AnalyticsAPI(facade, db_manager, lifespan)
    return analytics_api.app
