from .models import (
    Provenance,
    Settlement,
    EventStatus,
    JobStatus,
    Quote,
    MarketOutcome,
    Market,
    Event,
    QuoteBatch,
    CreditUsage,
    SportFailure,
    ProviderResult,
    OpportunityLeg,
    ArbitrageOpportunity,
    UserBet,
    HedgeLeg,
    HedgeSuggestion,
    JobRun,
    CostRecord,
    FeatureFlag,
    AuditEntry,
)
from .errors import (
    ArbWatchError,
    InvalidInput,
    ScanNotConfirmed,
    NoEligibleBookmakers,
    ProviderError,
    ProviderUnavailable,
    ProviderTimeout,
    ProviderNotConfigured,
    BudgetExhausted,
    UnknownJob,
    JobAlreadyRunning,
    NotFound,
)
from .math import calculate_implied_probability, detect_arbitrage, select_best_quote
from .sizing import calculate_stakes, calculate_hedge_stake
from .eligibility import EligibilityMap, EligibilityRegistry, DEFAULT_STATE_MAP

__all__ = [
    "Provenance",
    "Settlement",
    "EventStatus",
    "JobStatus",
    "Quote",
    "MarketOutcome",
    "Market",
    "Event",
    "QuoteBatch",
    "CreditUsage",
    "SportFailure",
    "ProviderResult",
    "OpportunityLeg",
    "ArbitrageOpportunity",
    "UserBet",
    "HedgeLeg",
    "HedgeSuggestion",
    "JobRun",
    "CostRecord",
    "FeatureFlag",
    "AuditEntry",
    "ArbWatchError",
    "InvalidInput",
    "ScanNotConfirmed",
    "NoEligibleBookmakers",
    "ProviderError",
    "ProviderUnavailable",
    "ProviderTimeout",
    "ProviderNotConfigured",
    "BudgetExhausted",
    "UnknownJob",
    "JobAlreadyRunning",
    "NotFound",
    "calculate_implied_probability",
    "detect_arbitrage",
    "select_best_quote",
    "calculate_stakes",
    "calculate_hedge_stake",
    "EligibilityMap",
    "EligibilityRegistry",
    "DEFAULT_STATE_MAP",
]
