"""
Pydantic models for markets, opportunities, research jobs and sizing results.

Attributes are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


Platform = Literal["polymarket", "kalshi"]
OpportunityType = Literal["mispriced", "arbitrage", "high_ev", "value_bet"]
RecommendedAction = Literal["buy_yes", "buy_no", "avoid"]
JobStatus = Literal["pending", "processing", "completed", "failed"]
RiskRating = Literal["low", "medium", "high", "extreme"]
SortBy = Literal["volume", "liquidity", "closing_date", "expected_value"]
SortOrder = Literal["asc", "desc"]


class ApiModel(BaseModel):
    """Base model serializing field names as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MarketOutcome(ApiModel):
    name: str
    price: float


class Market(ApiModel):
    """Immutable snapshot of a market on one platform."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Platform-local market identifier")
    platform: Platform = Field(..., description="Platform name: 'polymarket' or 'kalshi'")
    question: str = Field(..., description="Market title/question")
    description: Optional[str] = None
    category: Optional[str] = None
    end_date: Optional[datetime] = None
    yes_price: float = Field(..., ge=0, le=1)
    no_price: float = Field(..., ge=0, le=1)
    volume: float
    liquidity: float
    outcomes: Optional[List[MarketOutcome]] = None
    image_url: Optional[str] = None
    url: Optional[str] = None
    last_updated: datetime

    @property
    def key(self) -> tuple:
        return (self.platform, self.id)


class Opportunity(ApiModel):
    """A market flagged as mispriced relative to an estimated true probability."""
    id: str
    market: Market
    opportunity_type: OpportunityType
    expected_value: float
    kelly_size: float
    confidence: float = Field(..., ge=0, le=1)
    reasoning: str
    recommended_action: RecommendedAction
    detected_at: datetime


class Citation(ApiModel):
    id: str
    url: str
    title: str
    snippet: str
    relevance_score: float


class ResearchJob(ApiModel):
    """Research request against the Caesar provider (or its simulation)."""
    id: str
    status: JobStatus = "pending"
    query: str
    compute_units: int = Field(default=1, ge=1, le=10)
    market_id: Optional[str] = None
    result: Optional[str] = None
    citations: Optional[List[Citation]] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    # Provider-side job id, set once the live provider accepted the request
    provider_job_id: Optional[str] = Field(default=None, exclude=True)
    # Set when the live provider rejected the submission and the job runs on the simulated timeline
    simulated: bool = Field(default=False, exclude=True)


class ResearchRequest(ApiModel):
    """Body of POST /api/caesar/research."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "query": "Will Bitcoin reach $100,000 by end of 2024?",
                "computeUnits": 3,
                "marketId": "poly-btc-100k"
            }
        }
    )

    query: str = Field(..., min_length=1)
    compute_units: int = Field(default=1, ge=1, le=10)
    market_id: Optional[str] = None


class RiskRewardRequest(ApiModel):
    """Body of POST /api/calculate/risk-reward. Fields must be JSON numbers."""
    model_config = ConfigDict(strict=True)

    probability: float
    price: float
    bankroll: float


class RiskRewardResult(ApiModel):
    expected_value: float
    kelly_fraction: float
    half_kelly: float
    recommended_stake: float
    potential_profit: float
    potential_loss: float
    risk_rating: RiskRating
    odds: float
    break_even_probability: float


class MarketFilter(ApiModel):
    platform: Literal["all", "polymarket", "kalshi"] = "all"
    category: Optional[str] = None
    min_liquidity: Optional[float] = None
    min_volume: Optional[float] = None
    sort_by: SortBy = "volume"
    sort_order: SortOrder = "desc"
    search: Optional[str] = None


class PriceHistory(ApiModel):
    timestamp: datetime
    yes_price: float
    no_price: float
    volume: int


class CategoryCount(ApiModel):
    name: str
    count: int


class DashboardStats(ApiModel):
    total_markets: int
    total_volume: float
    active_opportunities: int
    average_ev: float = Field(..., alias="averageEV")
    top_categories: List[CategoryCount]


class MarketComparison(ApiModel):
    """Polymarket/Kalshi pair asking the same question."""
    polymarket_market: Market
    kalshi_market: Market
    similarity: float = Field(..., ge=0, le=100, description="Question similarity score 0-100")
    price_difference: float
    arbitrage_opportunity: bool
    arbitrage_profit: Optional[float] = None


class FeatureFlags(ApiModel):
    polymarket: bool = True
    kalshi: bool = True
    caesar: bool = False


class ConfigStatus(ApiModel):
    caesar_api_configured: bool
    features: FeatureFlags
