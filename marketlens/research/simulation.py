"""
Simulated research timeline used when no live Caesar provider is available.

The state is a pure function of the seconds elapsed since the job was created,
so it can be tested without timers.
"""
from typing import List

from ..models import Citation
from .caesar_client import ProviderStatus


PENDING_SECONDS = 3.0
COMPLETE_SECONDS = 8.0

SIMULATED_RESULT = """Based on comprehensive analysis of prediction market data and relevant factors:

**Market Assessment:**
The current pricing appears to incorporate most publicly available information. However, there are several key factors that may not be fully priced in:

1. **Historical Patterns:** Similar markets have shown a tendency to underestimate tail events by approximately 15-20%.

2. **Information Asymmetry:** Institutional participants may have access to data suggesting different probability estimates.

3. **Liquidity Considerations:** The current liquidity depth suggests potential for price impact on larger positions.

**Risk Factors:**
- Regulatory changes could significantly impact outcomes
- Market sentiment may shift based on upcoming announcements
- Correlation with broader market conditions exists

**Recommendation:**
Consider the Kelly Criterion for position sizing, with a recommended half-Kelly approach for more conservative risk management. The expected value analysis suggests a potential edge exists."""


def simulated_citations() -> List[Citation]:
    return [
        Citation(
            id="cite-1",
            url="https://research.example.com/prediction-markets-analysis",
            title="Prediction Markets: An Analysis of Efficiency",
            snippet="Studies show prediction markets are generally efficient but can exhibit "
                    "systematic biases in certain conditions...",
            relevance_score=0.92,
        ),
        Citation(
            id="cite-2",
            url="https://academic.example.org/market-microstructure",
            title="Market Microstructure and Price Discovery",
            snippet="The relationship between liquidity and price accuracy in prediction markets "
                    "reveals important patterns...",
            relevance_score=0.85,
        ),
        Citation(
            id="cite-3",
            url="https://finance.example.com/risk-management",
            title="Optimal Position Sizing Using Kelly Criterion",
            snippet="The Kelly Criterion provides a mathematically optimal approach to position "
                    "sizing, maximizing long-term growth...",
            relevance_score=0.78,
        ),
    ]


def simulated_status(
    elapsed_seconds: float,
    pending_seconds: float = PENDING_SECONDS,
    complete_seconds: float = COMPLETE_SECONDS
) -> ProviderStatus:
    """
    Status of a simulated job `elapsed_seconds` after creation.

    pending before `pending_seconds`, processing until `complete_seconds`,
    then completed with the canned result and citations.
    """
    if elapsed_seconds < pending_seconds:
        return ProviderStatus(status="pending")
    if elapsed_seconds < complete_seconds:
        return ProviderStatus(status="processing")
    return ProviderStatus(
        status="completed",
        result=SIMULATED_RESULT,
        citations=simulated_citations(),
    )
