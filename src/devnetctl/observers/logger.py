# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/observers/logger.py
from __future__ import annotations
import logging
from .events import BaseEvent, RunSummary


class LoggerObserver:
    """Every event goes to the trace log; the run summary also reaches the console."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, RunSummary):
            done = ", ".join(event.completed) or "none"
            if event.failed_stage:
                self.logger.info("devnet-%s: completed [%s], stopped at %s", event.devnet_id, done, event.failed_stage)
            else:
                self.logger.info("devnet-%s: all stages completed [%s]", event.devnet_id, done)

        fields = ", ".join(
            f"{k}={v}" for k, v in event.dict().items() if k not in ("ts", "run_id", "devnet_id", "mode")
        )
        self.logger.debug("[EVENT] %s: %s", event.__class__.__name__, fields)
