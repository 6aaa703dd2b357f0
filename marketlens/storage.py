"""
In-memory store for markets, opportunities, price history and research jobs.

One MarketStore is built at application start and handed to the API layer
and the research job manager. All access happens on the event loop thread,
so each dict operation is atomic and no locking is done.
"""
import random
import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from .logger import setup_logger
from .models import (
    CategoryCount,
    DashboardStats,
    Market,
    MarketFilter,
    Opportunity,
    PriceHistory,
    ResearchJob,
)
from .sample_data import sample_markets, sample_opportunities


MarketKey = Tuple[str, str]

HISTORY_DAYS = 30
HISTORY_STEP = timedelta(hours=4)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _matches(market: Market, query: str) -> bool:
    """Case-insensitive substring match over question, description and category."""
    query = query.lower()
    return (
        query in market.question.lower()
        or (market.description is not None and query in market.description.lower())
        or (market.category is not None and query in market.category.lower())
    )


def _as_aware(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


_SORT_KEYS = {
    "volume": lambda m: m.volume,
    "liquidity": lambda m: m.liquidity,
    "closing_date": lambda m: _as_aware(m.end_date),
    "expected_value": lambda m: abs(m.yes_price - 0.5),
}


class MarketStore:
    """Process-wide keyed collections serving filtered reads."""

    def __init__(self, load_sample_data: bool = True, seed: Optional[int] = None):
        """
        Initialize the store.

        Args:
            load_sample_data: Seed the demo markets and opportunities
            seed: Seed for the price history random walk (None = random)
        """
        self.logger = setup_logger("storage")
        self._rng = random.Random(seed)
        self._markets: Dict[MarketKey, Market] = {}
        self._opportunities: Dict[str, Opportunity] = {}
        self._jobs: Dict[str, ResearchJob] = {}
        self._price_histories: Dict[MarketKey, List[PriceHistory]] = {}

        if load_sample_data:
            self._initialize_sample_data()

    def _initialize_sample_data(self):
        now = datetime.now(timezone.utc)
        markets = sample_markets(now)
        self.update_markets_cache(markets)
        self.update_opportunities_cache(sample_opportunities(markets, now))
        self.logger.info(
            f"Loaded sample data: {len(self._markets)} markets, "
            f"{len(self._opportunities)} opportunities"
        )

    def _generate_price_history(self, market: Market, now: Optional[datetime] = None) -> List[PriceHistory]:
        """
        Build 30 days of 4-hourly prices drifting towards the current YES price.

        The last point is the current snapshot.
        """
        now = now or datetime.now(timezone.utc)
        rng = self._rng

        current_yes = market.yes_price + (rng.random() - 0.5) * 0.3
        current_yes = max(0.1, min(0.9, current_yes))

        history = []
        t = now - timedelta(days=HISTORY_DAYS)
        while t <= now:
            drift = (market.yes_price - current_yes) * 0.02
            random_walk = (rng.random() - 0.5) * 0.04
            current_yes = max(0.05, min(0.95, current_yes + drift + random_walk))

            history.append(PriceHistory(
                timestamp=t,
                yes_price=current_yes,
                no_price=1 - current_yes,
                volume=rng.randint(10000, 59999),
            ))
            t += HISTORY_STEP

        history[-1] = PriceHistory(
            timestamp=now,
            yes_price=market.yes_price,
            no_price=market.no_price,
            volume=int(market.volume // 30),
        )
        return history

    # Markets

    def get_markets(self, market_filter: Optional[MarketFilter] = None) -> List[Market]:
        markets = list(self._markets.values())
        if market_filter is None:
            return markets

        if market_filter.platform != "all":
            markets = [m for m in markets if m.platform == market_filter.platform]

        if market_filter.category:
            markets = [m for m in markets if m.category == market_filter.category]

        if market_filter.min_liquidity:
            markets = [m for m in markets if m.liquidity >= market_filter.min_liquidity]

        if market_filter.min_volume:
            markets = [m for m in markets if m.volume >= market_filter.min_volume]

        if market_filter.search:
            markets = [m for m in markets if _matches(m, market_filter.search)]

        markets.sort(
            key=_SORT_KEYS[market_filter.sort_by],
            reverse=market_filter.sort_order == "desc",
        )
        return markets

    def get_market(self, platform: str, market_id: str) -> Optional[Market]:
        return self._markets.get((platform, market_id))

    def search_markets(self, query: str) -> List[Market]:
        return [m for m in self._markets.values() if _matches(m, query)]

    def get_price_history(self, platform: str, market_id: str) -> List[PriceHistory]:
        return list(self._price_histories.get((platform, market_id), []))

    def update_markets_cache(self, markets: Iterable[Market]) -> None:
        """Upsert market snapshots by (platform, id)."""
        for market in markets:
            if market.key not in self._price_histories:
                self._price_histories[market.key] = self._generate_price_history(market)
            self._markets[market.key] = market

    # Opportunities

    def get_opportunities(self) -> List[Opportunity]:
        return sorted(self._opportunities.values(), key=lambda o: o.expected_value, reverse=True)

    def update_opportunities_cache(self, opportunities: Iterable[Opportunity]) -> None:
        """Replace the whole opportunity set."""
        self._opportunities = {opp.id: opp for opp in opportunities}

    # Research jobs

    def list_jobs(self) -> List[ResearchJob]:
        return sorted(self._jobs.values(), key=lambda j: j.created_at, reverse=True)

    def get_job(self, job_id: str) -> Optional[ResearchJob]:
        return self._jobs.get(job_id)

    def create_job(
        self,
        query: str,
        compute_units: int = 1,
        market_id: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> ResearchJob:
        job = ResearchJob(
            id=str(uuid.uuid4()),
            status="pending",
            query=query,
            compute_units=compute_units,
            market_id=market_id,
            created_at=created_at or datetime.now(timezone.utc),
        )
        self._jobs[job.id] = job
        return job

    def update_job(self, job_id: str, **changes) -> Optional[ResearchJob]:
        """Replace a job with an updated copy. Returns None for unknown ids."""
        job = self._jobs.get(job_id)
        if job is None:
            return None
        updated = job.model_copy(update=changes)
        self._jobs[job_id] = updated
        return updated

    # Stats

    def get_dashboard_stats(self) -> DashboardStats:
        markets = list(self._markets.values())
        opportunities = list(self._opportunities.values())

        category_counts = Counter(m.category for m in markets if m.category)
        # Counter.most_common keeps first-seen order among equal counts
        top_categories = [
            CategoryCount(name=name, count=count)
            for name, count in category_counts.most_common(5)
        ]

        average_ev = (
            sum(o.expected_value for o in opportunities) / len(opportunities)
            if opportunities else 0.0
        )

        return DashboardStats(
            total_markets=len(markets),
            total_volume=sum(m.volume for m in markets),
            active_opportunities=len(opportunities),
            average_ev=average_ev,
            top_categories=top_categories,
        )
