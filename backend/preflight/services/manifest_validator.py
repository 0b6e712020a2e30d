"""Manifest Validator — derives the manifest fingerprint for the current workload spec.

Invariants:
    - Every spec change clears the fingerprint before derivation starts
      (a stale fingerprint would falsely open the gate)
    - Derivation failure => spec_ready False, fingerprint None, last_error set
    - Results for a superseded spec are discarded (tagged by generation)
    - Derivation has no side effects beyond the fingerprint itself
"""

import logging
from typing import Any

from preflight.core.collaborator_protocols import ManifestDeriver
from preflight.core.domain_types import ManifestFingerprint
from preflight.core.errors import SpecInvalidError
from preflight.services.signal import Signal
from preflight.services.task_tracker import TaskTracker

logger = logging.getLogger(__name__)


class ManifestValidator:
    """Publishes spec_ready from the latest spec's derivation outcome."""

    def __init__(self, deriver: ManifestDeriver, tasks: TaskTracker):
        self._deriver = deriver
        self._tasks = tasks
        self._spec: Any = None
        self._generation = 0
        self._observed = False
        self.fingerprint: ManifestFingerprint | None = None
        self.last_error: SpecInvalidError | None = None
        self.ready: Signal[bool | None] = Signal("spec_ready", None)

    @property
    def spec(self) -> Any:
        return self._spec

    def update_spec(self, spec: Any) -> None:
        """Replace the workload spec and start deriving its fingerprint."""
        self._spec = spec
        self._generation += 1
        self.fingerprint = None
        if spec is None:
            self._fail(SpecInvalidError("no workload spec provided"))
            return
        self._publish()
        self._tasks.spawn(
            self._derive(spec, self._generation), "manifest-derive",
        )

    async def _derive(self, spec: Any, generation: int) -> None:
        try:
            raw = await self._deriver.derive_fingerprint(spec)
            if not raw:
                raise SpecInvalidError("manifest derivation produced no fingerprint")
        except SpecInvalidError as e:
            if generation == self._generation:
                self._fail(e)
            return
        except Exception as e:
            if generation == self._generation:
                self._fail(SpecInvalidError(str(e)))
            return

        if generation != self._generation:
            logger.info("Discarding fingerprint for superseded spec")
            return
        self.fingerprint = ManifestFingerprint(bytes(raw))
        self.last_error = None
        self._observed = True
        self._publish()

    def _fail(self, error: SpecInvalidError) -> None:
        logger.warning("Could not compute manifest version: %s", error.reason)
        self.fingerprint = None
        self.last_error = error
        self._observed = True
        self._publish()

    def _publish(self) -> None:
        if not self._observed:
            self.ready.publish(None)
            return
        self.ready.publish(self.fingerprint is not None)
