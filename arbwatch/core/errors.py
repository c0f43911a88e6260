"""Exception hierarchy for the arbitrage and hedge engine.

"No arbitrage found" and "no profitable hedge" are not errors;
those paths return None.
"""


class ArbWatchError(Exception):
    """Base class for all engine errors."""


class InvalidInput(ArbWatchError):
    """Missing or malformed request parameters. Raised before any work starts."""


class ScanNotConfirmed(InvalidInput):
    """A paid scan was requested without explicit confirmation."""


class NoEligibleBookmakers(ArbWatchError):
    """No sportsbook is licensed in every selected jurisdiction."""

    def __init__(self, jurisdictions):
        self.jurisdictions = sorted(jurisdictions)
        super().__init__(
            "No sportsbooks accessible in all selected jurisdictions: "
            + ", ".join(self.jurisdictions)
        )


class ProviderError(ArbWatchError):
    """Failure talking to the external odds provider."""

    def __init__(self, message: str, sport: str | None = None, usage=None):
        self.sport = sport
        self.usage = usage  # CreditUsage reported alongside the failure, if any
        super().__init__(message)


class ProviderUnavailable(ProviderError):
    """Provider returned an error or could not be reached."""


class ProviderTimeout(ProviderError):
    """Provider call exceeded its timeout."""


class ProviderNotConfigured(ProviderError):
    """No API key configured. Fatal at job start."""


class BudgetExhausted(ArbWatchError):
    """Not enough provider credits left to cover a fetch."""

    def __init__(self, required: int, available: int | None):
        self.required = required
        self.available = available
        super().__init__(
            f"Credit budget exhausted: need {required}, available {available}"
        )


class UnknownJob(ArbWatchError):
    """No job registered under that name."""


class JobAlreadyRunning(ArbWatchError):
    """A run of the same job is still in progress."""


class NotFound(ArbWatchError):
    """Requested record does not exist."""
