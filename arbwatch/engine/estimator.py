"""Credit-conscious scan planning.

Produces, with zero network calls, the provider endpoints a scan would
hit, how many requests each needs and the credit cost.

The Odds API bills each odds request at (markets x regions) credits.
"""

from pydantic import BaseModel

from ..core.eligibility import EligibilityRegistry, normalize_jurisdictions
from ..core.filters import ScanFilters


class EndpointEstimate(BaseModel):
    name: str
    url: str
    estimated_requests: int
    estimated_credits: int
    description: str


class UsageEstimate(BaseModel):
    endpoints: list[EndpointEstimate]
    total_estimated_requests: int
    estimated_credit_usage: int
    sports: list[str]
    jurisdictions: list[str]
    eligible_bookmakers: list[str]
    warning_note: str


def credits_per_odds_request(filters: ScanFilters) -> int:
    return len(filters.markets) * len(filters.regions)


def estimate_scan_cost(filters: ScanFilters, default_sports: list[str]) -> int:
    """Credits a scan with these filters would spend."""
    return len(filters.resolve_sports(default_sports)) * credits_per_odds_request(filters)


def _warning_note(total_requests: int, eligible_count: int) -> str:
    if eligible_count == 0:
        return "No sportsbook is licensed in every selected jurisdiction - a scan would find nothing"
    if total_requests > 50:
        return "High request count - consider narrowing sports or regions to reduce cost"
    if total_requests > 20:
        return "Moderate request count - results will be comprehensive"
    return "Low request count - efficient scan"


def estimate_usage(
    filters: ScanFilters,
    registry: EligibilityRegistry,
    default_sports: list[str],
) -> UsageEstimate:
    """
    Plan a scan without touching the network.

    Raises InvalidInput when no jurisdiction is selected. Identical
    inputs with an unchanged eligibility map give identical output.
    """
    jurisdictions = sorted(normalize_jurisdictions(filters.jurisdictions))
    eligible = sorted(registry.eligible_bookmakers(jurisdictions))

    sports = filters.resolve_sports(default_sports)
    per_request = credits_per_odds_request(filters)
    odds_requests = len(sports)

    if len(eligible) < 10:
        bookmaker_note = f" (filtered to {len(eligible)} bookmakers for {', '.join(jurisdictions)})"
    else:
        bookmaker_note = f" ({len(eligible)} bookmakers available in {', '.join(jurisdictions)})"

    endpoints = [
        EndpointEstimate(
            name="Live & Upcoming Odds",
            url="GET /v4/sports/{sport}/odds",
            estimated_requests=odds_requests,
            estimated_credits=odds_requests * per_request,
            description=(
                f"Odds for {len(sports)} sports, one request each "
                f"(regions: {', '.join(filters.regions)}; markets: {', '.join(filters.markets)})"
                + bookmaker_note
            ),
        ),
        EndpointEstimate(
            name="Event Details (on-demand)",
            url="GET /v4/sports/{sport}/events/{event}/odds",
            estimated_requests=0,
            estimated_credits=0,
            description="Extended markets per event - only called when an event is opened",
        ),
    ]

    total_requests = sum(e.estimated_requests for e in endpoints)
    total_credits = sum(e.estimated_credits for e in endpoints)

    return UsageEstimate(
        endpoints=endpoints,
        total_estimated_requests=total_requests,
        estimated_credit_usage=total_credits,
        sports=sports,
        jurisdictions=jurisdictions,
        eligible_bookmakers=eligible,
        warning_note=_warning_note(total_requests, len(eligible)),
    )
