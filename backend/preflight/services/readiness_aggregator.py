"""Readiness Aggregator — recomputes the ReadinessState whenever any input signal changes.

Invariants:
    - Subscribes to all inputs (4 checks + wallet status + issuance in-flight)
    - Recomputation is synchronous and pure (compute_readiness); no hidden state
    - Always reflects the latest value of every input, whatever order they arrive in
    - Publishes only when the resulting state actually changes
"""

from preflight.core.domain_types import WalletStatus
from preflight.core.readiness import ReadinessState, compute_readiness
from preflight.services.signal import Signal


class ReadinessAggregator:
    """Single producer of the readiness snapshot."""

    def __init__(
        self,
        wallet: Signal[bool | None],
        wallet_status: Signal[WalletStatus],
        funds: Signal[bool | None],
        spec: Signal[bool | None],
        certificate: Signal[bool | None],
        certificate_issuing: Signal[bool],
    ):
        self._inputs = (
            wallet, wallet_status, funds, spec, certificate, certificate_issuing,
        )
        self.state: Signal[ReadinessState] = Signal("readiness", self._compute())
        self._unsubscribers = [
            signal.subscribe(self._on_input) for signal in self._inputs
        ]

    def _compute(self) -> ReadinessState:
        wallet, wallet_status, funds, spec, certificate, issuing = self._inputs
        return compute_readiness(
            wallet=wallet.value,
            funds=funds.value,
            spec=spec.value,
            certificate=certificate.value,
            certificate_issuing=issuing.value,
            wallet_status=wallet_status.value,
        )

    def _on_input(self, _value: object) -> None:
        self.state.publish(self._compute())

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
