# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/observers/jsonfile.py
from __future__ import annotations
import json
from pathlib import Path
from typing import Optional, Sequence, Type
from .interface import Observer
from .events import BaseEvent


class JsonFileObserver(Observer):
    """
    Appends one JSON line per event. With `only`, other event types are
    ignored, e.g. a per-devnet history that keeps RunSummary events only.
    """

    def __init__(self, path: str | Path, *, only: Optional[Sequence[Type[BaseEvent]]] = None):
        self.path = Path(path)
        self.only = tuple(only) if only else None
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def notify(self, event: BaseEvent) -> None:
        if self.only and not isinstance(event, self.only):
            return
        line = json.dumps({"type": event.__class__.__name__, **event.dict()}, default=str)
        with self.path.open("a") as f:
            f.write(line + "\n")
