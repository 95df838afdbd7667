# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/pipeline/sequencer.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from devnetctl.config.loader import (
    edit_setup_config,
    load_setup_config,
    stage_config_files,
    validate_configs,
)
from devnetctl.config.models import Settings
from devnetctl.errors import InfrastructureError
from devnetctl.fleet.coordinator import FleetCoordinator
from devnetctl.infra.terraform import InfrastructureOutputs, TerraformRunner
from devnetctl.observers.dispatcher import EventBus
from devnetctl.observers.events import (
    RunSummary,
    StageFailed,
    StageStarted,
    StageSucceeded,
    new_ctx,
)
from devnetctl.remote.executor import RemoteExecutor
from devnetctl.topology.models import RoleAssignment
from devnetctl.topology.resolver import host_assignment, resolve_topology
from . import catalogue

log = logging.getLogger("devnetctl")

BOOT_WAIT_SECONDS = 30

STAGES = (
    "provision",
    "configure",
    "boot-wait",
    "install",
    "prepare-toolchain",
    "cleanup",
    "setup",
)


@dataclass
class RunState:
    """In-memory state of one run; never persisted."""
    outputs: Optional[InfrastructureOutputs] = None
    fleet: List[RoleAssignment] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)

    @property
    def host(self) -> RoleAssignment:
        return host_assignment(self.fleet)


class DevnetPipeline:
    """
    Drives the devnet bring-up as a strict linear sequence of stages. Each
    stage starts only after the previous one fully resolved; the first
    failure aborts the run.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        executor: RemoteExecutor,
        terraform: TerraformRunner,
        bus: Optional[EventBus] = None,
        sleep: Callable[[float], None] = time.sleep,
        run_id: Optional[str] = None,
    ):
        self.settings = settings
        self.executor = executor
        self.terraform = terraform
        self.bus = bus or EventBus()
        self.sleep = sleep
        self.coordinator = FleetCoordinator(executor, sleep=sleep)
        self.state = RunState()
        self._ctx = new_ctx(settings.devnet_id, settings.mode.value, run_id=run_id)

    # ------------------ stages ------------------

    def provision(self) -> None:
        self.terraform.select_workspace(self.settings.terraform_workspace)
        self.terraform.apply()
        self.state.outputs = self.terraform.output()
        if not self.state.outputs.addresses:
            raise InfrastructureError("terraform output lists no instance addresses")
        log.info(
            "Provisioned %d instance(s) on %s: %s",
            len(self.state.outputs.addresses),
            self.state.outputs.cloud,
            ", ".join(self.state.outputs.addresses),
        )

    def configure(self) -> None:
        outputs = self.state.outputs
        validate_configs(self.settings, outputs.cloud)

        config_path = stage_config_files(self.settings)
        edit_setup_config(config_path, self.settings.mode, outputs.addresses)

        cfg = load_setup_config(config_path)
        self.state.fleet = resolve_topology(
            outputs.addresses,
            cfg.eth_host_user,
            cfg.devnet_bor_users,
            cfg.devnet_erigon_users,
        )
        for a in self.state.fleet:
            log.info("  %s", a)

    def boot_wait(self) -> None:
        log.info("📍Waiting %ds for the VMs to initialize...", BOOT_WAIT_SECONDS)
        self.sleep(BOOT_WAIT_SECONDS)

    def install(self) -> None:
        self.coordinator.run(
            self.state.fleet,
            lambda target: catalogue.install_chain(target, self.settings),
        )

    def prepare_toolchain(self) -> None:
        self.coordinator.run(
            [self.state.host],
            lambda target: catalogue.prepare_toolchain_chain(target, self.settings),
        )

    def cleanup(self) -> None:
        self.coordinator.run(self.state.fleet, catalogue.cleanup_chain)

    def setup(self) -> None:
        self.coordinator.run(
            [self.state.host],
            lambda target: catalogue.setup_chain(target, self.settings),
        )

    # ------------------ driver ------------------

    def _stage_hosts(self) -> List[str]:
        return [a.identity for a in self.state.fleet]

    def run_stage(self, name: str, fn: Callable[[], None]) -> None:
        log.info("=== stage %s ===", name)
        self.bus.emit(StageStarted(stage=name, hosts=self._stage_hosts(), **self._ctx))
        t0 = time.monotonic()
        try:
            fn()
        except Exception as exc:
            self.bus.emit(StageFailed(stage=name, error=str(exc), **self._ctx))
            raise
        duration_ms = int((time.monotonic() - t0) * 1000)
        self.state.completed.append(name)
        self.bus.emit(StageSucceeded(stage=name, duration_ms=duration_ms, **self._ctx))

    def run(self) -> RunState:
        steps = {
            "provision": self.provision,
            "configure": self.configure,
            "boot-wait": self.boot_wait,
            "install": self.install,
            "prepare-toolchain": self.prepare_toolchain,
            "cleanup": self.cleanup,
            "setup": self.setup,
        }

        current = None
        try:
            for current in STAGES:
                self.run_stage(current, steps[current])
        except Exception as exc:
            log.error("stage %s failed: %s", current, exc)
            self.bus.emit(
                RunSummary(completed=list(self.state.completed), failed_stage=current, **self._ctx)
            )
            raise

        self.bus.emit(RunSummary(completed=list(self.state.completed), **self._ctx))
        return self.state
