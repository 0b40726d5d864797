"""Routes reconciliations to the local or remote engine."""

from __future__ import annotations

import logging
from typing import Optional

from gridsync.shared.core.configuration import GridConfig
from gridsync.shared.core.errors import ConfigurationError

from ..state.store import StateStore
from ..state.view_state import ReconcileReason
from .local_engine import LocalEngine
from .remote_engine import RemoteSyncEngine

logger = logging.getLogger(__name__)


class ModeSelector:
    """Static per-instance routing, fixed by ``config.mode`` at construction."""

    def __init__(
        self,
        config: GridConfig,
        local: Optional[LocalEngine] = None,
        remote: Optional[RemoteSyncEngine] = None,
    ) -> None:
        if config.is_remote and remote is None:
            raise ConfigurationError("remote mode requires a RemoteSyncEngine")
        if not config.is_remote and local is None:
            raise ConfigurationError("local mode requires a LocalEngine")
        self.mode = config.mode
        self.local = local
        self.remote = remote
        self._store: Optional[StateStore] = None

    @property
    def is_remote(self) -> bool:
        return self.mode == "remote"

    def attach(self, store: StateStore) -> None:
        """Bind this selector as the store's reconciler."""
        self._store = store
        store.bind_reconciler(self.route)

    def detach(self) -> None:
        if self._store is not None:
            self._store.bind_reconciler(None)
            self._store = None

    def route(self, reason: ReconcileReason) -> None:
        if self._store is None:
            raise RuntimeError("ModeSelector is not attached to a store")
        logger.debug(f"Routing {reason.value} reconciliation to {self.mode} engine")
        if self.is_remote:
            self.remote.request(reason)
        else:
            self.local.reconcile(self._store)
