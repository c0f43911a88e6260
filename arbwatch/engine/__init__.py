from .arbitrage import DetectionParams, calculate_confidence, detect
from .budget import CreditBudget
from .estimator import UsageEstimate, estimate_scan_cost, estimate_usage
from .hedge import HedgeMonitor, HedgeParams, calculate_hedge, calculate_hedge_confidence
from .ranker import OpportunityRanker, max_profit_pick, rank
from .instructions import (
    format_opportunity,
    format_instruction,
    format_opportunity_short,
    format_opportunity_json,
    format_opportunities_table,
    format_hedge,
    generate_disclaimer,
)

__all__ = [
    "DetectionParams",
    "calculate_confidence",
    "detect",
    "CreditBudget",
    "UsageEstimate",
    "estimate_scan_cost",
    "estimate_usage",
    "HedgeMonitor",
    "HedgeParams",
    "calculate_hedge",
    "calculate_hedge_confidence",
    "OpportunityRanker",
    "max_profit_pick",
    "rank",
    "format_opportunity",
    "format_instruction",
    "format_opportunity_short",
    "format_opportunity_json",
    "format_opportunities_table",
    "format_hedge",
    "generate_disclaimer",
]
