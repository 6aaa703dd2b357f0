"""
Cross-platform market comparison.

Pairs Polymarket and Kalshi markets that ask the same question and checks
whether buying YES on one side and NO on the other costs less than the
guaranteed 1.0 payout.
"""
import re
from typing import List, Optional

from rapidfuzz import fuzz

from .logger import setup_logger
from .models import Market, MarketComparison


class MarketComparator:
    """Matches markets across platforms by question similarity."""

    def __init__(self, similarity_threshold: float = 60.0):
        """
        Args:
            similarity_threshold: Minimum question similarity (0-100)
        """
        self.similarity_threshold = similarity_threshold
        self.logger = setup_logger("market_comparator")

    def _normalize_question(self, question: str) -> str:
        question = question.lower().strip()
        question = re.sub(r"[^\w\s$%.,]", " ", question)
        return ' '.join(question.split())

    def similarity(self, a: Market, b: Market) -> float:
        return fuzz.token_sort_ratio(
            self._normalize_question(a.question),
            self._normalize_question(b.question),
        )

    def compare(self, polymarket: Market, kalshi: Market, similarity: Optional[float] = None) -> MarketComparison:
        """Price difference and arbitrage check for one market pair."""
        if similarity is None:
            similarity = self.similarity(polymarket, kalshi)

        # YES on Polymarket + NO on Kalshi, or the reverse
        cost = min(
            polymarket.yes_price + kalshi.no_price,
            kalshi.yes_price + polymarket.no_price,
        )
        arbitrage = cost < 1.0

        return MarketComparison(
            polymarket_market=polymarket,
            kalshi_market=kalshi,
            similarity=similarity,
            price_difference=polymarket.yes_price - kalshi.yes_price,
            arbitrage_opportunity=arbitrage,
            arbitrage_profit=1.0 - cost if arbitrage else None,
        )

    def find_matches(self, markets: List[Market], threshold: Optional[float] = None) -> List[MarketComparison]:
        """
        Best Kalshi match for each Polymarket market above the threshold.

        Returns:
            Comparisons sorted by similarity, highest first
        """
        threshold = self.similarity_threshold if threshold is None else threshold
        polymarkets = [m for m in markets if m.platform == "polymarket"]
        kalshi_markets = [m for m in markets if m.platform == "kalshi"]

        comparisons = []
        for poly in polymarkets:
            best: Optional[Market] = None
            best_score = 0.0
            for kalshi in kalshi_markets:
                score = self.similarity(poly, kalshi)
                if score > best_score:
                    best, best_score = kalshi, score

            if best is not None and best_score >= threshold:
                comparisons.append(self.compare(poly, best, best_score))

        self.logger.debug(
            f"Matched {len(comparisons)} of {len(polymarkets)} Polymarket markets (threshold {threshold})"
        )
        comparisons.sort(key=lambda c: c.similarity, reverse=True)
        return comparisons
