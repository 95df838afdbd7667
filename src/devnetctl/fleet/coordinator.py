# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import concurrent.futures
import logging
import time
from typing import Callable, List, Optional, Sequence

from devnetctl.remote.executor import RemoteExecutor
from devnetctl.topology.models import RoleAssignment
from .tasks import HostTaskChain

log = logging.getLogger("devnetctl")

ChainBuilder = Callable[[RoleAssignment], HostTaskChain]


class FleetCoordinator:
    """
    Fans one HostTaskChain per host out over a thread pool.

    run() returns when every chain succeeded, or raises the first failure in
    completion order as soon as it is observed. Sibling chains are not
    cancelled: they keep running against their hosts after run() raised.
    drain() waits for them.
    """

    def __init__(self, executor: RemoteExecutor, *, sleep: Callable[[float], None] = time.sleep):
        self.executor = executor
        self.sleep = sleep
        self._inflight: List[concurrent.futures.Future] = []

    def run(self, assignments: Sequence[RoleAssignment], chain_builder: ChainBuilder) -> None:
        if not assignments:
            return

        # build every chain up front so a catalogue error dispatches nothing
        chains = [chain_builder(a) for a in assignments]

        pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=len(chains),
            thread_name_prefix="devnetctl-host",
        )
        futures = {
            pool.submit(chain.run, self.executor, self.sleep): chain
            for chain in chains
        }
        # no new work will be submitted; running chains are left alone
        pool.shutdown(wait=False)

        for fut in concurrent.futures.as_completed(futures):
            exc = fut.exception()
            if exc is not None:
                chain = futures[fut]
                still_running = [f for f in futures if not f.done()]
                self._inflight.extend(still_running)
                log.error(
                    "[%s] chain failed (%d sibling chain(s) still running): %s",
                    chain.target.identity, len(still_running), exc,
                )
                raise exc

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until chains left running by a failed run() have finished."""
        if self._inflight:
            concurrent.futures.wait(self._inflight, timeout=timeout)
            self._inflight = [f for f in self._inflight if not f.done()]


def run_across_fleet(
    assignments: Sequence[RoleAssignment],
    chain_builder: ChainBuilder,
    executor: RemoteExecutor,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    FleetCoordinator(executor, sleep=sleep).run(assignments, chain_builder)
