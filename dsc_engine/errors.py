"""Exception hierarchy for the engine and its in-memory collaborators."""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every error raised by the engine."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(EngineError):
    """Caller-correctable input problem; the call had no effect."""


class InvalidAmount(ValidationError):
    def __init__(self, amount: int) -> None:
        self.amount = amount
        super().__init__(f"amount must be greater than zero, got {amount}")


class UnsupportedAsset(ValidationError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"asset {asset!r} is not a registered collateral")


class ConfigurationError(ValidationError):
    """Construction-time configuration is inconsistent."""


class InsufficientCollateral(ValidationError):
    def __init__(self, account: str, asset: str, available: int, requested: int) -> None:
        self.account = account
        self.asset = asset
        self.available = available
        self.requested = requested
        super().__init__(
            f"{account} holds {available} {asset}, cannot redeem {requested}"
        )


# ---------------------------------------------------------------------------
# Solvency
# ---------------------------------------------------------------------------


class SolvencyError(EngineError):
    """The health-factor gate rejected the operation."""


class HealthFactorBroken(SolvencyError):
    def __init__(self, health_factor: int) -> None:
        self.health_factor = health_factor
        super().__init__(f"health factor broken: {health_factor}")


class HealthFactorOk(SolvencyError):
    """Liquidation attempted against an account that is not liquidatable."""

    def __init__(self, health_factor: int) -> None:
        self.health_factor = health_factor
        super().__init__(f"health factor is ok: {health_factor}")


class HealthFactorNotImproved(SolvencyError):
    def __init__(self, starting: int, ending: int) -> None:
        self.starting = starting
        self.ending = ending
        super().__init__(
            f"liquidation did not improve health factor ({starting} -> {ending})"
        )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class CollaboratorError(EngineError):
    """A token or oracle collaborator reported failure."""


class TransferFailed(CollaboratorError):
    pass


class MintFailed(CollaboratorError):
    pass


class BurnFailed(CollaboratorError):
    pass


class OracleUnavailable(CollaboratorError):
    """Price feed is unknown, stale or returned a non-positive price."""


# ---------------------------------------------------------------------------
# Arithmetic / execution
# ---------------------------------------------------------------------------


class ArithmeticUnderflow(EngineError):
    def __init__(self, minuend: int, subtrahend: int, message: str | None = None) -> None:
        self.minuend = minuend
        self.subtrahend = subtrahend
        super().__init__(message or f"arithmetic underflow: {minuend} - {subtrahend}")


class InsufficientCollateralToSeize(ArithmeticUnderflow):
    def __init__(self, available: int, requested: int) -> None:
        super().__init__(
            available,
            requested,
            f"cannot seize {requested}, victim holds only {available}",
        )


class ReentrancyError(EngineError):
    """A mutating entry point was re-entered while another call was active."""


# ---------------------------------------------------------------------------
# In-memory token ledgers
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Invalid operation on an in-memory token ledger."""


class NotOwnerError(TokenError):
    pass
