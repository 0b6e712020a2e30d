"""Check Reports — per-check display detail derived from a ReadinessState.

Invariants:
    - Exactly one report per check, in CHECK_ORDER
    - Wallet report distinguishes extension_missing from disconnected (different remedies)
    - Unsatisfied reports always name a remedial action; satisfied reports never do
    - Never raises — missing balance renders as "unknown"

Design Decisions:
    - Copy lives here, not in the API layer (ADR: UI renders reports verbatim)
    - Pure function, not a method on ReadinessState (ADR: state is gating, reports are presentation)
"""

from dataclasses import dataclass
from decimal import Decimal

from preflight.core.domain_types import (
    CheckName, CheckStatus, DISPLAY_DENOM, MIN_FUNDING_DISPLAY,
    RemedialAction, WalletStatus,
)
from preflight.core.readiness import CHECK_ORDER, ReadinessState


@dataclass(frozen=True)
class CheckReport:
    check: CheckName
    status: CheckStatus
    title: str
    detail: str | None = None
    action: RemedialAction | None = None

    def to_dict(self) -> dict:
        return {
            "check": self.check.value,
            "status": self.status.value,
            "title": self.title,
            "detail": self.detail,
            "action": self.action.value if self.action else None,
        }


def _wallet_report(state: ReadinessState) -> CheckReport:
    status = state.status_of(CheckName.WALLET)
    if state.wallet_status == WalletStatus.EXTENSION_MISSING:
        return CheckReport(
            CheckName.WALLET, status,
            "You will need to install the Keplr wallet extension.",
            "In order to deploy you will need to connect your wallet.",
            RemedialAction.INSTALL_EXTENSION,
        )
    if status == CheckStatus.SATISFIED:
        return CheckReport(CheckName.WALLET, status, "Wallet Connected")
    detail = (
        "Waiting for the wallet to approve the connection."
        if state.wallet_status == WalletStatus.CONNECTING
        else "In order to deploy you will need to connect your wallet."
    )
    return CheckReport(
        CheckName.WALLET, status, "Connect your Wallet", detail,
        RemedialAction.CONNECT_WALLET,
    )


def _funds_report(
    state: ReadinessState, balance: Decimal | None, minimum: Decimal,
) -> CheckReport:
    status = state.status_of(CheckName.FUNDS)
    if status == CheckStatus.SATISFIED:
        return CheckReport(CheckName.FUNDS, status, "Wallet Funds Sufficient")
    shown = "unknown" if balance is None else f"{balance} {DISPLAY_DENOM}"
    return CheckReport(
        CheckName.FUNDS, status, "Insufficient funds in your wallet",
        f"Minimum wallet balance is at least {minimum} {DISPLAY_DENOM} "
        f"(current balance: {shown}). You can add funds to your wallet or "
        "specify an authorized depositor.",
        RemedialAction.ADD_FUNDS,
    )


def _spec_report(state: ReadinessState) -> CheckReport:
    status = state.status_of(CheckName.SPEC)
    if status == CheckStatus.SATISFIED:
        return CheckReport(CheckName.SPEC, status, "SDL is Valid")
    return CheckReport(
        CheckName.SPEC, status, "Invalid SDL",
        "SDL could not be validated. Please double-check and ensure all values are correct.",
        RemedialAction.FIX_SPEC,
    )


def _certificate_report(state: ReadinessState) -> CheckReport:
    status = state.status_of(CheckName.CERTIFICATE)
    if status == CheckStatus.SATISFIED:
        return CheckReport(CheckName.CERTIFICATE, status, "Valid Certificate")
    if status == CheckStatus.IN_PROGRESS:
        return CheckReport(
            CheckName.CERTIFICATE, status, "Please wait, creating certificate...",
        )
    return CheckReport(
        CheckName.CERTIFICATE, status, "Missing Certificate",
        "In order to deploy you will need to create a certificate.",
        RemedialAction.CREATE_CERTIFICATE,
    )


def build_check_reports(
    state: ReadinessState,
    balance: Decimal | None = None,
    minimum: Decimal = MIN_FUNDING_DISPLAY,
) -> list[CheckReport]:
    """One report per check, in display order."""
    builders = {
        CheckName.WALLET: lambda: _wallet_report(state),
        CheckName.FUNDS: lambda: _funds_report(state, balance, minimum),
        CheckName.SPEC: lambda: _spec_report(state),
        CheckName.CERTIFICATE: lambda: _certificate_report(state),
    }
    return [builders[check]() for check in CHECK_ORDER]
