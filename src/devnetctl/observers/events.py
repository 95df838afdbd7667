# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single start invocation
    devnet_id: str
    mode: str         # dockerized/remote

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(devnet_id: str, mode: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "run_id": run_id or str(uuid.uuid4()),
        "devnet_id": devnet_id,
        "mode": mode,
    }


# ----- Stages -----

@dataclass(frozen=True)
class StageStarted(BaseEvent):
    stage: str
    hosts: List[str]

@dataclass(frozen=True)
class StageSucceeded(BaseEvent):
    stage: str
    duration_ms: int

@dataclass(frozen=True)
class StageFailed(BaseEvent):
    stage: str
    error: str


# ----- Run -----

@dataclass(frozen=True)
class RunSummary(BaseEvent):
    completed: List[str]
    failed_stage: Optional[str] = None
