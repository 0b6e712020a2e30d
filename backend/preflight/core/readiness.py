"""Readiness — pure aggregation of the 4 readiness checks into one gating decision.

Invariants:
    - all_ready == wallet_ready and funds_ready and spec_ready and cert_ready
    - A check whose signal was never observed is UNKNOWN and counts as not ready
    - Certificate check is IN_PROGRESS while issuance is outstanding and not yet ready
    - ReadinessState is never mutated — recomputed from inputs on every change

Design Decisions:
    - Tri-state inputs (True/False/None) keep UNKNOWN distinct from UNSATISFIED
      without a separate "observed" bookkeeping structure
    - Frozen dataclass: equality lets the aggregator publish only on real changes
"""

from dataclasses import dataclass

from preflight.core.domain_types import CheckName, CheckStatus, WalletStatus

CHECK_ORDER: tuple[CheckName, ...] = (
    CheckName.WALLET, CheckName.FUNDS, CheckName.SPEC, CheckName.CERTIFICATE,
)


def _status(value: bool | None) -> CheckStatus:
    if value is None:
        return CheckStatus.UNKNOWN
    return CheckStatus.SATISFIED if value else CheckStatus.UNSATISFIED


@dataclass(frozen=True)
class ReadinessState:
    """Snapshot of every check plus the aggregate. Pure value, no IO."""

    wallet: bool | None = None
    funds: bool | None = None
    spec: bool | None = None
    certificate: bool | None = None
    certificate_issuing: bool = False
    wallet_status: WalletStatus = WalletStatus.DISCONNECTED

    @property
    def wallet_ready(self) -> bool:
        return self.wallet is True

    @property
    def funds_ready(self) -> bool:
        return self.funds is True

    @property
    def spec_ready(self) -> bool:
        return self.spec is True

    @property
    def cert_ready(self) -> bool:
        return self.certificate is True

    @property
    def all_ready(self) -> bool:
        return (
            self.wallet_ready
            and self.funds_ready
            and self.spec_ready
            and self.cert_ready
        )

    def status_of(self, check: CheckName) -> CheckStatus:
        if check == CheckName.WALLET:
            return _status(self.wallet)
        if check == CheckName.FUNDS:
            return _status(self.funds)
        if check == CheckName.SPEC:
            return _status(self.spec)
        if self.certificate_issuing and not self.cert_ready:
            return CheckStatus.IN_PROGRESS
        return _status(self.certificate)

    @property
    def missing_checks(self) -> list[str]:
        return [
            check.value for check in CHECK_ORDER
            if self.status_of(check) != CheckStatus.SATISFIED
        ]


def compute_readiness(
    wallet: bool | None,
    funds: bool | None,
    spec: bool | None,
    certificate: bool | None,
    certificate_issuing: bool = False,
    wallet_status: WalletStatus = WalletStatus.DISCONNECTED,
) -> ReadinessState:
    """Recompute the readiness snapshot. Deterministic given its inputs."""
    return ReadinessState(
        wallet=wallet,
        funds=funds,
        spec=spec,
        certificate=certificate,
        certificate_issuing=certificate_issuing,
        wallet_status=wallet_status,
    )
