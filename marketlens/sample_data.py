"""
Demo markets and opportunities loaded into the store at boot.
"""
from datetime import datetime, timezone
from typing import List, Optional

from .models import Market, Opportunity


def _end_of(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def sample_markets(now: Optional[datetime] = None) -> List[Market]:
    now = now or datetime.now(timezone.utc)
    return [
        Market(
            id="poly-btc-100k",
            platform="polymarket",
            question="Will Bitcoin reach $100,000 by end of 2024?",
            description="This market resolves YES if Bitcoin's price reaches or exceeds $100,000 "
                        "at any point before January 1, 2025.",
            category="Crypto",
            end_date=_end_of(2024, 12, 31),
            yes_price=0.42,
            no_price=0.58,
            volume=5420000,
            liquidity=890000,
            url="https://polymarket.com/event/bitcoin-100k",
            last_updated=now,
        ),
        Market(
            id="poly-trump-2024",
            platform="polymarket",
            question="Will Trump win the 2024 Presidential Election?",
            description="This market will resolve to YES if Donald Trump wins the 2024 United States "
                        "Presidential Election.",
            category="Politics",
            end_date=_end_of(2024, 11, 6),
            yes_price=0.56,
            no_price=0.44,
            volume=125000000,
            liquidity=15600000,
            url="https://polymarket.com/event/trump-2024",
            last_updated=now,
        ),
        Market(
            id="kalshi-fed-rate",
            platform="kalshi",
            question="Will the Fed cut rates by 50bps in December 2024?",
            description="Market resolves YES if the Federal Reserve cuts the federal funds rate by "
                        "50 basis points at the December 2024 FOMC meeting.",
            category="Economics",
            end_date=_end_of(2024, 12, 18),
            yes_price=0.18,
            no_price=0.82,
            volume=2340000,
            liquidity=450000,
            url="https://kalshi.com/markets/fed-rate-december",
            last_updated=now,
        ),
        Market(
            id="poly-eth-staking",
            platform="polymarket",
            question="Will Ethereum staking yield exceed 5% APR in 2024?",
            category="Crypto",
            end_date=_end_of(2024, 12, 31),
            yes_price=0.35,
            no_price=0.65,
            volume=890000,
            liquidity=234000,
            last_updated=now,
        ),
        Market(
            id="kalshi-sp500-5000",
            platform="kalshi",
            question="Will S&P 500 close above 5,500 in 2024?",
            category="Stocks",
            end_date=_end_of(2024, 12, 31),
            yes_price=0.72,
            no_price=0.28,
            volume=4560000,
            liquidity=890000,
            last_updated=now,
        ),
        Market(
            id="poly-openai-gpt5",
            platform="polymarket",
            question="Will OpenAI release GPT-5 by end of 2024?",
            category="Tech",
            end_date=_end_of(2024, 12, 31),
            yes_price=0.28,
            no_price=0.72,
            volume=3200000,
            liquidity=670000,
            last_updated=now,
        ),
        Market(
            id="kalshi-recession",
            platform="kalshi",
            question="Will the US enter a recession in 2024?",
            category="Economics",
            end_date=_end_of(2024, 12, 31),
            yes_price=0.15,
            no_price=0.85,
            volume=7800000,
            liquidity=1230000,
            last_updated=now,
        ),
        Market(
            id="poly-ai-regulation",
            platform="polymarket",
            question="Will the EU pass comprehensive AI regulation by Q2 2024?",
            category="Politics",
            end_date=_end_of(2024, 6, 30),
            yes_price=0.89,
            no_price=0.11,
            volume=1560000,
            liquidity=345000,
            last_updated=now,
        ),
    ]


def sample_opportunities(markets: List[Market], now: Optional[datetime] = None) -> List[Opportunity]:
    """Opportunities for the BTC, Fed-rate and S&P markets of sample_markets()."""
    now = now or datetime.now(timezone.utc)
    by_id = {market.id: market for market in markets}
    return [
        Opportunity(
            id="opp-1",
            market=by_id["poly-btc-100k"],
            opportunity_type="high_ev",
            expected_value=0.12,
            kelly_size=0.08,
            confidence=0.75,
            reasoning="Based on historical patterns and current market momentum, BTC has a higher "
                      "probability of reaching 100k than current market implies. Network effects and "
                      "institutional adoption suggest underpricing.",
            recommended_action="buy_yes",
            detected_at=now,
        ),
        Opportunity(
            id="opp-2",
            market=by_id["kalshi-fed-rate"],
            opportunity_type="mispriced",
            expected_value=0.08,
            kelly_size=0.05,
            confidence=0.68,
            reasoning="Fed communication suggests a more aggressive rate cut is unlikely. The market may "
                      "be overestimating the probability of a 50bps cut based on recent economic data.",
            recommended_action="buy_no",
            detected_at=now,
        ),
        Opportunity(
            id="opp-3",
            market=by_id["kalshi-sp500-5000"],
            opportunity_type="value_bet",
            expected_value=0.06,
            kelly_size=0.04,
            confidence=0.62,
            reasoning="S&P 500 has strong momentum and corporate earnings have been solid. The current "
                      "price underestimates the probability of continued bullish momentum.",
            recommended_action="buy_yes",
            detected_at=now,
        ),
    ]
