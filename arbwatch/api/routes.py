"""API routes for the arbitrage and hedge engine.

All endpoints are advisory. Nothing here places a bet.
"""

from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Header, Query, Request
from pydantic import BaseModel, Field

from ..core.errors import InvalidInput
from ..core.filters import ScanFilters
from ..core.models import ArbitrageOpportunity, Settlement
from ..engine.instructions import (
    format_hedge,
    format_opportunities_table,
    format_opportunity_json,
    generate_disclaimer,
)
from ..services import Services

router = APIRouter(prefix="/api", tags=["arbitrage"])


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_actor(x_actor: str | None = Header(default=None)) -> str:
    """Caller identity. Authentication is handled outside this service."""
    return x_actor.strip() if x_actor and x_actor.strip() else "anonymous"


class BetCreate(BaseModel):
    event_id: str
    market_id: str
    sportsbook: str
    outcome_id: str
    stake: float
    price_at_bet: float
    notes: str | None = None
    is_tracked: bool = False


class SettleRequest(BaseModel):
    settlement: Settlement


class FlagUpdate(BaseModel):
    enabled: bool
    description: str | None = None


class StateMapUpdate(BaseModel):
    mapping: dict[str, list[str]] = Field(min_length=1)


async def _opportunity_json(services: Services, opp: ArbitrageOpportunity) -> dict:
    event = await services.storage.get_event(opp.event_id)
    market = await services.storage.get_market(opp.market_id)
    return format_opportunity_json(opp, event, market, services.clock())


def _filters_from(payload: dict[str, Any] | None) -> ScanFilters:
    params = {k: v for k, v in (payload or {}).items() if k != "confirmed"}
    return ScanFilters.build(**params)


@router.get("/health")
async def health_check(services: Services = Depends(get_services)):
    """Health check endpoint."""
    budget = services.budget
    return {
        "status": "healthy",
        "scheduler_running": services.scheduler.is_running,
        "provider_configured": bool(services.settings.odds_api_key),
        "credits": {
            "used": budget.used,
            "remaining": budget.remaining,
            "reserved": budget.reserved,
            "policy": budget.policy.value,
            "low": budget.is_low,
        },
        "eligibility_version": services.registry.snapshot().version,
        "advisory_only": True,
        "disclaimer": generate_disclaimer(),
    }


@router.post("/estimate")
async def estimate_usage(
    payload: dict[str, Any] | None = Body(default=None),
    services: Services = Depends(get_services),
):
    """
    Estimate provider credit usage for a scan.

    Makes no provider call. Use the result to confirm a scan.
    """
    estimate = services.arbitrage.estimate(_filters_from(payload))
    return {
        **estimate.model_dump(),
        "requires_confirmation": True,
        "disclaimer": generate_disclaimer(),
    }


@router.post("/scan")
async def trigger_scan(
    payload: dict[str, Any] | None = Body(default=None),
    services: Services = Depends(get_services),
    actor: str = Depends(get_actor),
):
    """
    Run a paid arbitrage scan.

    Requires `"confirmed": true` in the body after reviewing /estimate.
    """
    filters = _filters_from(payload)
    confirmed = (payload or {}).get("confirmed") is True
    outcome = await services.arbitrage.scan(filters, confirmed=confirmed, actor=actor)

    pick = outcome.max_profit_pick
    return {
        "success": True,
        "total_found": outcome.total_found,
        "markets_evaluated": outcome.markets_evaluated,
        "opportunities": [await _opportunity_json(services, o) for o in outcome.opportunities],
        "max_profit_pick": await _opportunity_json(services, pick) if pick else None,
        "credit_usage": outcome.credit_usage.model_dump(),
        "failed_sports": [f.model_dump() for f in outcome.failures],
        "cache_expires_at": outcome.cache_expires_at.isoformat(),
        "jurisdictions": outcome.jurisdictions,
        "eligible_bookmakers": outcome.eligible_bookmakers,
        "scan_duration_ms": round(outcome.scan_duration_ms, 1),
        "disclaimer": generate_disclaimer(),
    }


@router.get("/opportunities")
async def get_opportunities(
    min_profit: float = Query(0.0, ge=0, description="Minimum profit %"),
    limit: int = Query(50, ge=1, le=200),
    format: Literal["json", "text"] = "json",
    services: Services = Depends(get_services),
):
    """Unexpired opportunities, best first."""
    opportunities = await services.arbitrage.active_opportunities()
    if min_profit > 0:
        opportunities = [o for o in opportunities if o.expected_profit_pct >= min_profit]
    opportunities = opportunities[:limit]

    if format == "text":
        return {
            "text": format_opportunities_table(opportunities),
            "disclaimer": generate_disclaimer(),
        }

    return {
        "count": len(opportunities),
        "opportunities": [await _opportunity_json(services, o) for o in opportunities],
        "disclaimer": generate_disclaimer(),
    }


@router.get("/state-map")
async def get_state_map(services: Services = Depends(get_services)):
    snapshot = services.registry.snapshot()
    return {
        "version": snapshot.version,
        "mapping": snapshot.to_dict(),
        "bookmakers": snapshot.all_bookmakers,
    }


@router.put("/state-map")
async def update_state_map(
    update: StateMapUpdate,
    services: Services = Depends(get_services),
    actor: str = Depends(get_actor),
):
    """Publish a new jurisdiction → sportsbook mapping."""
    snapshot = services.registry.publish(update.mapping)
    await services.audit.record(actor, "state_map_updated", "state_map", {
        "version": snapshot.version,
        "jurisdictions": len(snapshot.mapping),
    })
    return {"version": snapshot.version, "mapping": snapshot.to_dict()}


@router.post("/bets", status_code=201)
async def create_bet(
    bet: BetCreate,
    services: Services = Depends(get_services),
    actor: str = Depends(get_actor),
):
    created = await services.bets.create_bet(actor, **bet.model_dump())
    return created.model_dump(mode="json")


@router.get("/bets")
async def list_bets(
    tracked: bool | None = None,
    settlement: Settlement | None = None,
    services: Services = Depends(get_services),
):
    bets = await services.bets.list_bets(tracked=tracked, settlement=settlement)
    return {"count": len(bets), "bets": [b.model_dump(mode="json") for b in bets]}


@router.get("/bets/{bet_id}")
async def get_bet(bet_id: str, services: Services = Depends(get_services)):
    return (await services.bets.get_bet(bet_id)).model_dump(mode="json")


@router.post("/bets/{bet_id}/track")
async def track_bet(
    bet_id: str,
    services: Services = Depends(get_services),
    actor: str = Depends(get_actor),
):
    return (await services.bets.set_tracking(bet_id, True, actor)).model_dump(mode="json")


@router.post("/bets/{bet_id}/untrack")
async def untrack_bet(
    bet_id: str,
    services: Services = Depends(get_services),
    actor: str = Depends(get_actor),
):
    return (await services.bets.set_tracking(bet_id, False, actor)).model_dump(mode="json")


@router.post("/bets/{bet_id}/settle")
async def settle_bet(
    bet_id: str,
    request: SettleRequest,
    services: Services = Depends(get_services),
    actor: str = Depends(get_actor),
):
    return (await services.bets.settle(bet_id, request.settlement, actor)).model_dump(mode="json")


@router.post("/bets/{bet_id}/hedge")
async def hedge_bet(bet_id: str, services: Services = Depends(get_services)):
    """Evaluate a tracked bet for a profit-locking hedge now."""
    suggestion = await services.bets.hedge(bet_id)
    if suggestion is None:
        return {
            "suggestion": None,
            "message": "No profitable hedge available",
            "disclaimer": generate_disclaimer(),
        }

    bet = await services.bets.get_bet(bet_id)
    market = await services.storage.get_market(bet.market_id)
    return {
        "suggestion": suggestion.model_dump(mode="json"),
        "formatted_text": format_hedge(bet, suggestion, market),
        "disclaimer": generate_disclaimer(),
    }


@router.get("/alerts")
async def get_alerts(services: Services = Depends(get_services)):
    """Tracked bets with a live hedge suggestion."""
    alerts = []
    for bet, suggestion in await services.hedge_monitor.active_alerts():
        market = await services.storage.get_market(bet.market_id)
        alerts.append({
            "bet": bet.model_dump(mode="json"),
            "suggestion": suggestion.model_dump(mode="json"),
            "formatted_text": format_hedge(bet, suggestion, market),
        })
    return {"count": len(alerts), "alerts": alerts, "disclaimer": generate_disclaimer()}


@router.get("/jobs")
async def get_jobs(services: Services = Depends(get_services)):
    statuses = await services.scheduler.statuses()
    return {
        "scheduler_running": services.scheduler.is_running,
        "jobs": [
            {**status, "last_run": status["last_run"].model_dump(mode="json") if status["last_run"] else None}
            for status in statuses
        ],
    }


@router.post("/jobs/{name}/run")
async def run_job(
    name: str,
    services: Services = Depends(get_services),
    actor: str = Depends(get_actor),
):
    run = await services.scheduler.run_job(name, trigger="manual", actor=actor)
    return run.model_dump(mode="json")


@router.get("/flags")
async def get_flags(services: Services = Depends(get_services)):
    flags = await services.flags.list_flags()
    return {"flags": [f.model_dump(mode="json") for f in flags]}


@router.put("/flags/{key}")
async def update_flag(
    key: str,
    update: FlagUpdate,
    services: Services = Depends(get_services),
    actor: str = Depends(get_actor),
):
    if not key.strip():
        raise InvalidInput("Flag key must not be empty")
    flag = await services.flags.set_flag(key, update.enabled, update.description, actor=actor)
    return flag.model_dump(mode="json")
