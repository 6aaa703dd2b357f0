"""
FastAPI JSON API for the prediction market dashboard.
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, List, Literal, Optional

from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..comparison import MarketComparator
from ..config_loader import Config
from ..logger import configure_logging, setup_logger
from ..models import (
    ConfigStatus,
    DashboardStats,
    FeatureFlags,
    Market,
    MarketComparison,
    MarketFilter,
    Opportunity,
    PriceHistory,
    ResearchJob,
    ResearchRequest,
    RiskRewardRequest,
    RiskRewardResult,
    SortBy,
    SortOrder,
)
from ..research.caesar_client import CaesarClient
from ..research.jobs import ResearchJobManager
from ..risk_reward import RiskRewardError, compute
from ..storage import MarketStore


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


class DashboardApp:
    """FastAPI application serving markets, opportunities, research jobs and sizing."""

    def __init__(
        self,
        config: Optional[Config] = None,
        store: Optional[MarketStore] = None,
        research_client: Optional[CaesarClient] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            config: Application config (defaults when omitted)
            store: Shared store; built from config when omitted
            research_client: Caesar client; built from config when an API key is set
            clock: Current-time source for the research job manager
        """
        self.config = config or Config()
        configure_logging(
            self.config.logging.level,
            self.config.logging.file,
            self.config.logging.max_bytes,
            self.config.logging.backup_count,
        )
        self.logger = setup_logger("dashboard")

        self.store = store if store is not None else MarketStore(load_sample_data=self.config.use_sample_data)

        caesar_cfg = self.config.caesar
        if research_client is None and caesar_cfg.configured:
            research_client = CaesarClient(
                api_key=caesar_cfg.api_key,
                base_url=caesar_cfg.base_url,
                timeout=caesar_cfg.timeout,
                retry_attempts=caesar_cfg.retry_attempts,
                retry_delay=caesar_cfg.retry_delay,
            )

        self.jobs = ResearchJobManager(
            self.store,
            client=research_client,
            pending_seconds=self.config.simulation.pending_seconds,
            complete_seconds=self.config.simulation.complete_seconds,
            max_job_age_seconds=self.config.research.max_job_age_seconds,
            clock=clock,
        )
        self.comparator = MarketComparator(self.config.comparison.similarity_threshold)

        self.app = FastAPI(title="Prediction Market Dashboard", lifespan=self._lifespan)

        self._setup_exception_handlers()
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        mode = "live Caesar API" if self.jobs.live else "simulated research"
        self.logger.info(f"Dashboard starting ({mode})")
        yield
        self.logger.info("Dashboard shutting down")
        await self.jobs.aclose()

    def _setup_exception_handlers(self):
        """Malformed bodies and query strings are 400s, not FastAPI's default 422."""

        @self.app.exception_handler(RequestValidationError)
        async def validation_error(request: Request, exc: RequestValidationError):
            errors = exc.errors()
            in_body = any(err.get("loc", ("",))[0] == "body" for err in errors)
            message = "Invalid request body" if in_body else "Invalid query parameters"
            self.logger.debug(f"{request.method} {request.url.path}: {message}: {errors}")
            return _error(400, message, details=jsonable_encoder(errors))

    def _setup_routes(self):
        """Setup FastAPI routes."""

        @self.app.get("/health")
        async def health_check():
            return {"status": "ok"}

        @self.app.get("/api/config/status", response_model=ConfigStatus)
        async def config_status():
            """Which data sources and providers are available."""
            caesar = self.jobs.live
            return ConfigStatus(
                caesar_api_configured=caesar,
                features=FeatureFlags(polymarket=True, kalshi=True, caesar=caesar),
            )

        @self.app.get("/api/stats", response_model=DashboardStats)
        async def api_stats():
            try:
                return self.store.get_dashboard_stats()
            except Exception as e:
                self.logger.error(f"Error fetching stats: {e}", exc_info=True)
                return _error(500, "Failed to fetch stats")

        @self.app.get("/api/markets", response_model=List[Market])
        async def api_markets(
            platform: Literal["all", "polymarket", "kalshi"] = "all",
            category: Optional[str] = None,
            min_liquidity: Optional[float] = Query(None, alias="minLiquidity"),
            min_volume: Optional[float] = Query(None, alias="minVolume"),
            sort_by: SortBy = Query("volume", alias="sortBy"),
            sort_order: SortOrder = Query("desc", alias="sortOrder"),
            search: Optional[str] = None,
        ):
            """Filtered, sorted market list."""
            market_filter = MarketFilter(
                platform=platform,
                category=category,
                min_liquidity=min_liquidity,
                min_volume=min_volume,
                sort_by=sort_by,
                sort_order=sort_order,
                search=search,
            )
            try:
                return self.store.get_markets(market_filter)
            except Exception as e:
                self.logger.error(f"Error fetching markets: {e}", exc_info=True)
                return _error(500, "Failed to fetch markets")

        @self.app.get("/api/markets/search", response_model=List[Market])
        async def api_search_markets(q: str = ""):
            try:
                return self.store.search_markets(q)
            except Exception as e:
                self.logger.error(f"Error searching markets: {e}", exc_info=True)
                return _error(500, "Failed to search markets")

        @self.app.get("/api/markets/comparisons", response_model=List[MarketComparison])
        async def api_market_comparisons(
            min_similarity: Optional[float] = Query(None, alias="minSimilarity", ge=0, le=100)
        ):
            """Polymarket/Kalshi pairs asking the same question."""
            try:
                return self.comparator.find_matches(self.store.get_markets(), min_similarity)
            except Exception as e:
                self.logger.error(f"Error comparing markets: {e}", exc_info=True)
                return _error(500, "Failed to compare markets")

        @self.app.get("/api/markets/{platform}/{market_id}", response_model=Market)
        async def api_market(platform: str, market_id: str):
            try:
                market = self.store.get_market(platform, market_id)
            except Exception as e:
                self.logger.error(f"Error fetching market: {e}", exc_info=True)
                return _error(500, "Failed to fetch market")

            if market is None:
                return _error(404, "Market not found")
            return market

        @self.app.get("/api/markets/{platform}/{market_id}/history", response_model=List[PriceHistory])
        async def api_market_history(platform: str, market_id: str):
            try:
                return self.store.get_price_history(platform, market_id)
            except Exception as e:
                self.logger.error(f"Error fetching price history: {e}", exc_info=True)
                return _error(500, "Failed to fetch price history")

        @self.app.get("/api/opportunities", response_model=List[Opportunity])
        async def api_opportunities():
            """Opportunities by expected value, best first."""
            try:
                return self.store.get_opportunities()
            except Exception as e:
                self.logger.error(f"Error fetching opportunities: {e}", exc_info=True)
                return _error(500, "Failed to fetch opportunities")

        @self.app.get("/api/caesar/jobs", response_model=List[ResearchJob])
        async def api_research_jobs():
            try:
                return self.jobs.list_jobs()
            except Exception as e:
                self.logger.error(f"Error fetching research jobs: {e}", exc_info=True)
                return _error(500, "Failed to fetch research jobs")

        @self.app.get("/api/caesar/jobs/{job_id}", response_model=ResearchJob)
        async def api_research_job(job_id: str):
            """Current job state; non-terminal jobs are re-checked first."""
            try:
                job = await self.jobs.poll(job_id)
            except Exception as e:
                self.logger.error(f"Error fetching research job {job_id}: {e}", exc_info=True)
                return _error(500, "Failed to fetch research job")

            if job is None:
                return _error(404, "Job not found")
            return job

        @self.app.post("/api/caesar/research", response_model=ResearchJob, status_code=201)
        async def api_submit_research(body: ResearchRequest):
            try:
                return await self.jobs.submit(body.query, body.compute_units, body.market_id)
            except Exception as e:
                self.logger.error(f"Error creating research job: {e}", exc_info=True)
                return _error(500, "Failed to create research job")

        @self.app.post("/api/calculate/risk-reward", response_model=RiskRewardResult)
        async def api_risk_reward(body: RiskRewardRequest):
            """Half-Kelly sizing for a YES position."""
            try:
                return compute(body.probability, body.price, body.bankroll)
            except RiskRewardError as e:
                return _error(400, str(e))
            except Exception as e:
                self.logger.error(f"Error calculating risk/reward: {e}", exc_info=True)
                return _error(500, "Failed to calculate risk/reward")

    def get_app(self) -> FastAPI:
        """Get FastAPI app instance."""
        return self.app
