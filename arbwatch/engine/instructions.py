"""Human-readable instruction generation.

Converts opportunities and hedge suggestions into clear step-by-step
instructions that humans can execute manually.

Output must be:
- Exact bet amounts
- Clear sportsbook names
- Specific odds (decimal and American)
- Expected outcomes
"""

from datetime import datetime

from ..core.models import ArbitrageOpportunity, Event, HedgeSuggestion, Market, OpportunityLeg, UserBet
from ..core.normalization import market_description, sportsbook_display_name
from ..utils.odds import decimal_to_american, format_american_odds
from ..utils.time import seconds_until, utc_now


def _american(price: float) -> str:
    return format_american_odds(decimal_to_american(price))


def _label(market: Market | None, outcome_id: str) -> str:
    return market.label_for(outcome_id) if market is not None else outcome_id


def format_instruction(leg: OpportunityLeg, step_num: int, market: Market | None = None) -> str:
    """
    Format a single bet instruction.

    Example: "1. Bet $469.14 on Boston Celtics at DraftKings (2.15 / +115)"
    """
    return (
        f"{step_num}. Bet ${leg.stake:.2f} on {_label(market, leg.outcome_id)} "
        f"at {sportsbook_display_name(leg.sportsbook)} ({leg.price:.2f} / {_american(leg.price)})"
    )


def format_opportunity(
    opp: ArbitrageOpportunity,
    event: Event | None = None,
    market: Market | None = None,
    now: datetime | None = None,
) -> str:
    """
    Format an opportunity as human-readable instructions.

    Example output:
    ```
    ARBITRAGE OPPORTUNITY - Boston Celtics @ Los Angeles Lakers
    Market: Moneyline

    Guaranteed Profit: $8.66 (0.87%)
    Confidence: 92% | Expires in ~300 seconds

    INSTRUCTIONS:
    1. Bet $469.14 on Boston Celtics at DraftKings (2.15 / +115)
    2. Bet $530.86 on Los Angeles Lakers at FanDuel (1.90 / -111)

    Total Stake: $1000.00
    Guaranteed Payout: $1008.66
    ```
    """
    now = now or utc_now()
    lines = []

    title = event.name if event is not None else opp.event_id
    lines.append(f"ARBITRAGE OPPORTUNITY - {title}")
    lines.append(f"Market: {market_description(opp.market_type)}")
    lines.append("")

    lines.append(f"Guaranteed Profit: ${opp.locked_profit:.2f} ({opp.expected_profit_pct:.2f}%)")
    lines.append(
        f"Confidence: {opp.confidence:.0%} | "
        f"Expires in ~{seconds_until(opp.expires_at, now)} seconds"
    )
    if opp.jurisdictions:
        lines.append(f"Legal in: {', '.join(opp.jurisdictions)}")
    lines.append("")

    lines.append("INSTRUCTIONS:")
    for i, leg in enumerate(opp.legs, 1):
        lines.append(format_instruction(leg, i, market))

    lines.append("")
    lines.append(f"Total Stake: ${sum(leg.stake for leg in opp.legs):.2f}")
    lines.append(f"Guaranteed Payout: ${opp.guaranteed_payout:.2f}")

    return "\n".join(lines)


def format_opportunity_short(opp: ArbitrageOpportunity, event: Event | None = None) -> str:
    """
    Format opportunity as single-line summary.

    Example: "ARB +0.87% | Boston Celtics @ Los Angeles Lakers | DraftKings/FanDuel"
    """
    books = "/".join(sorted({sportsbook_display_name(leg.sportsbook) for leg in opp.legs}))
    title = event.name if event is not None else opp.event_id
    return f"ARB +{opp.expected_profit_pct:.2f}% | {title} | {books}"


def format_opportunity_json(
    opp: ArbitrageOpportunity,
    event: Event | None = None,
    market: Market | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Format opportunity as JSON-serializable dict.

    Used for API responses.
    """
    now = now or utc_now()
    return {
        "id": opp.id,
        "event_id": opp.event_id,
        "event_name": event.name if event is not None else None,
        "sport": event.league if event is not None else None,
        "start_time": event.start_time.isoformat() if event is not None else None,
        "market_id": opp.market_id,
        "market_type": opp.market_type,
        "profit_pct": opp.expected_profit_pct,
        "locked_profit": opp.locked_profit,
        "notional_bankroll": opp.notional_bankroll,
        "guaranteed_payout": opp.guaranteed_payout,
        "total_implied": opp.total_implied,
        "confidence": opp.confidence,
        "jurisdictions": list(opp.jurisdictions),
        "provenance": opp.provenance.value,
        "created_at": opp.created_at.isoformat(),
        "expires_at": opp.expires_at.isoformat(),
        "expires_in_seconds": seconds_until(opp.expires_at, now),
        "recommended_stakes": opp.recommended_stakes,
        "legs": [
            {
                "step": i + 1,
                "sportsbook": leg.sportsbook,
                "sportsbook_name": sportsbook_display_name(leg.sportsbook),
                "outcome_id": leg.outcome_id,
                "outcome": _label(market, leg.outcome_id),
                "stake": leg.stake,
                "stake_fraction": leg.stake_fraction,
                "price": leg.price,
                "odds_american": _american(leg.price),
                "potential_payout": round(leg.payout, 2),
            }
            for i, leg in enumerate(opp.legs)
        ],
        "formatted_text": format_opportunity(opp, event, market, now),
    }


def format_hedge(
    bet: UserBet,
    suggestion: HedgeSuggestion,
    market: Market | None = None,
) -> str:
    """
    Format a hedge suggestion.

    Example output:
    ```
    HEDGE ALERT - your $100.00 on Boston Celtics at 2.50 (+150)
    Lock in $1.32 - $1.32 whichever side wins

    1. Bet $75.76 on Los Angeles Lakers at FanDuel (3.30 / +230)
    ```
    """
    lines = [
        f"HEDGE ALERT - your ${bet.stake:.2f} on {_label(market, bet.outcome_id)} "
        f"at {bet.price_at_bet:.2f} ({_american(bet.price_at_bet)})",
        f"Lock in ${suggestion.locked_profit_low:.2f} - ${suggestion.locked_profit_high:.2f} "
        "whichever side wins",
        "",
    ]
    for i, leg in enumerate(suggestion.legs, 1):
        lines.append(
            f"{i}. Bet ${leg.stake:.2f} on {_label(market, leg.outcome_id)} "
            f"at {sportsbook_display_name(leg.sportsbook)} ({leg.price:.2f} / {_american(leg.price)})"
        )
    return "\n".join(lines)


def format_opportunities_table(opportunities: list[ArbitrageOpportunity]) -> str:
    """
    Format multiple opportunities as ASCII table.

    For CLI output.
    """
    if not opportunities:
        return "No opportunities found."

    lines = []
    header = f"{'Profit':<9} {'Locked':<10} {'Conf':<5} {'Market':<40} {'Books'}"
    lines.append(header)
    lines.append("-" * len(header))

    for opp in opportunities[:20]:
        books = "/".join(sorted({leg.sportsbook[:10] for leg in opp.legs}))
        market = opp.market_id[:38] + ".." if len(opp.market_id) > 40 else opp.market_id
        line = (
            f"{opp.expected_profit_pct:>6.2f}%  ${opp.locked_profit:<9.2f}"
            f"{opp.confidence:<5.2f} {market:<40} {books}"
        )
        lines.append(line)

    return "\n".join(lines)


def generate_disclaimer() -> str:
    """
    Generate advisory disclaimer text.

    MUST be displayed on all outputs.
    """
    return """
DISCLAIMER: This is advisory information only. No bets are placed automatically.
All betting decisions and executions must be made by you. Opportunities are
only shown for sportsbooks licensed in every jurisdiction you selected. Odds can
change rapidly. Always verify current odds before placing any bets. Gamble responsibly.
""".strip()
