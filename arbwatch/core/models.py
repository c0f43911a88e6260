from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.time import utc_now


def new_id() -> str:
    return uuid4().hex


class Provenance(str, Enum):
    """Where the prices behind an opportunity came from."""
    LIVE = "live"
    SIMULATED = "simulated"


class Settlement(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    VOID = "void"
    CASHOUT = "cashout"


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINAL = "final"


class JobStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


# =============================================================================
# Odds snapshots
# =============================================================================

class Quote(BaseModel):
    """One sportsbook's price for one outcome of one market at one instant.

    Immutable: every refresh is a new Quote.
    """
    model_config = ConfigDict(frozen=True)

    market_id: str
    sportsbook: str
    outcome_id: str
    price: float = Field(gt=1.0, description="Decimal odds must be > 1")
    is_live: bool = False
    jurisdictions: frozenset[str] = frozenset()
    captured_at: datetime = Field(default_factory=utc_now)

    @property
    def implied_probability(self) -> float:
        return 1.0 / self.price


class MarketOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    label: str


class Market(BaseModel):
    """One betable proposition with a closed, mutually exclusive outcome set."""
    model_config = ConfigDict(frozen=True)

    market_id: str = Field(min_length=1)
    event_id: str = Field(min_length=1)
    market_type: str  # moneyline, spread, total
    outcomes: tuple[MarketOutcome, ...]

    @field_validator("outcomes")
    @classmethod
    def check_outcomes(cls, outcomes: tuple[MarketOutcome, ...]) -> tuple[MarketOutcome, ...]:
        if len(outcomes) < 2:
            raise ValueError("A market needs at least two outcomes")
        ids = [o.id for o in outcomes]
        if len(set(ids)) != len(ids):
            raise ValueError("Outcome ids must be unique within a market")
        return outcomes

    @property
    def outcome_ids(self) -> list[str]:
        return [o.id for o in self.outcomes]

    def label_for(self, outcome_id: str) -> str:
        for outcome in self.outcomes:
            if outcome.id == outcome_id:
                return outcome.label
        return outcome_id


class Event(BaseModel):
    """Event with its markets. Sport and league are mandatory."""
    model_config = ConfigDict(frozen=True)

    event_id: str = Field(min_length=1)
    sport: str = Field(min_length=1)
    league: str = Field(min_length=1)
    home_team: str = ""
    away_team: str = ""
    start_time: datetime
    status: EventStatus = EventStatus.SCHEDULED
    markets: tuple[Market, ...] = ()

    @model_validator(mode="after")
    def markets_belong_to_event(self) -> "Event":
        for market in self.markets:
            if market.event_id != self.event_id:
                raise ValueError(
                    f"Market {market.market_id} belongs to {market.event_id}, not {self.event_id}"
                )
        return self

    @property
    def name(self) -> str:
        if self.home_team and self.away_team:
            return f"{self.away_team} @ {self.home_team}"
        return self.event_id


class QuoteBatch(BaseModel):
    """Normalized provider output for one event."""
    event: Event
    quotes: list[Quote]


class CreditUsage(BaseModel):
    """Provider credit counters, as reported by the provider."""
    used: int = 0                 # Cumulative for the billing period
    remaining: int | None = None  # None when the provider did not report it
    cost: int = 0                 # Credits consumed by this fetch


class SportFailure(BaseModel):
    sport: str
    error: str
    kind: Literal["timeout", "unavailable"]


class ProviderResult(BaseModel):
    batches: list[QuoteBatch] = Field(default_factory=list)
    credit_usage: CreditUsage = Field(default_factory=CreditUsage)
    failures: list[SportFailure] = Field(default_factory=list)
    sports_requested: int = 0

    @property
    def all_failed(self) -> bool:
        return self.sports_requested > 0 and len(self.failures) >= self.sports_requested


# =============================================================================
# Opportunities and hedges
# =============================================================================

class OpportunityLeg(BaseModel):
    model_config = ConfigDict(frozen=True)

    sportsbook: str
    outcome_id: str
    price: float
    stake_fraction: float
    stake: float

    @property
    def payout(self) -> float:
        return self.stake * self.price


class ArbitrageOpportunity(BaseModel):
    """A detected sure-win combination. Point-in-time fact, never mutated."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    event_id: str
    market_id: str
    market_type: str = ""
    legs: tuple[OpportunityLeg, ...]
    total_implied: float
    expected_profit_pct: float
    notional_bankroll: float
    locked_profit: float
    guaranteed_payout: float
    validity_window_seconds: int
    confidence: float = Field(ge=0.0, le=1.0)
    jurisdictions: tuple[str, ...] = ()
    provenance: Provenance = Provenance.LIVE
    created_at: datetime
    expires_at: datetime

    @model_validator(mode="after")
    def legs_form_a_sure_win(self) -> "ArbitrageOpportunity":
        outcome_ids = [leg.outcome_id for leg in self.legs]
        if len(outcome_ids) < 2:
            raise ValueError("An opportunity needs a leg on at least two outcomes")
        if len(set(outcome_ids)) != len(outcome_ids):
            raise ValueError(f"Each outcome must be covered exactly once, got {outcome_ids}")
        if not self.total_implied < 1.0:
            raise ValueError(f"Implied probabilities sum to {self.total_implied}, no sure win")
        return self

    @property
    def recommended_stakes(self) -> dict[str, float]:
        """Stake per outcome id."""
        return {leg.outcome_id: leg.stake for leg in self.legs}

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class UserBet(BaseModel):
    """A manually recorded wager the user has already placed."""
    id: str = Field(default_factory=new_id)
    user_id: str = "anonymous"
    event_id: str
    market_id: str
    sportsbook: str
    outcome_id: str
    stake: float = Field(gt=0)
    price_at_bet: float = Field(gt=1.0)
    notes: str | None = None
    is_tracked: bool = False
    settlement: Settlement = Settlement.PENDING
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def potential_return(self) -> float:
        return self.stake * self.price_at_bet


class HedgeLeg(BaseModel):
    model_config = ConfigDict(frozen=True)

    sportsbook: str
    outcome_id: str
    price: float
    stake: float


class HedgeSuggestion(BaseModel):
    """Recommended offsetting bet. Only emitted when locked_profit_low > 0."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    bet_id: str
    legs: tuple[HedgeLeg, ...]
    locked_profit_low: float
    locked_profit_high: float
    rationale: str
    confidence: float = Field(ge=0.0, le=1.0)
    created_at: datetime
    expires_at: datetime

    @model_validator(mode="after")
    def profit_is_locked(self) -> "HedgeSuggestion":
        if self.locked_profit_low <= 0:
            raise ValueError("A hedge suggestion must lock in a positive profit")
        return self

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


# =============================================================================
# Jobs, costs, flags, audit
# =============================================================================

class JobRun(BaseModel):
    id: str = Field(default_factory=new_id)
    job_name: str
    status: JobStatus = JobStatus.RUNNING
    trigger: Literal["schedule", "manual"] = "schedule"
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: datetime | None = None
    error_summary: str | None = None
    metrics: dict = Field(default_factory=dict)


class CostRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    operation: str
    credits_used: int
    details: dict = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class FeatureFlag(BaseModel):
    key: str
    enabled: bool = False
    description: str = ""
    updated_at: datetime = Field(default_factory=utc_now)


class AuditEntry(BaseModel):
    id: str = Field(default_factory=new_id)
    actor: str
    action: str
    target: str | None = None
    payload_hash: str
    payload_preview: str
    timestamp: datetime = Field(default_factory=utc_now)
