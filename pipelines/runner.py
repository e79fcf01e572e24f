from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, List, Optional

from utils.logging_setup import init_logging


@dataclass
class RunContext:
    kind: Optional[str] = None
    # Raw vendor records, in the order the snapshot returned them
    records: list = field(default_factory=list)
    # (record index, ParsedProfile) pairs that passed validation
    profiles: list = field(default_factory=list)
    # (record index, ParsedCompany) pairs that passed validation
    companies: list = field(default_factory=list)
    # One RecordOutcome slot per record
    outcomes: list = field(default_factory=list)
    meta: dict = field(default_factory=dict)

    def ensure_outcome_slots(self) -> None:
        if len(self.outcomes) < len(self.records):
            self.outcomes.extend([None] * (len(self.records) - len(self.outcomes)))

    def settled_outcomes(self) -> list:
        return [o for o in self.outcomes if o is not None]


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        # Make logging idempotent for any direct runner use
        init_logging()
        for step in self.steps:
            ctx = step.run(ctx)
        return ctx
