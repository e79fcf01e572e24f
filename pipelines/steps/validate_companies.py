from __future__ import annotations

from models.import_outcome import RecordOutcome
from pipelines.runner import RunContext
from services import payload
from services.validation import ScrapeValidator


class ValidateScrapedCompanies:
    def __init__(self) -> None:
        self.validator = ScrapeValidator()

    def run(self, ctx: RunContext) -> RunContext:
        ctx.ensure_outcome_slots()
        valid = []
        for index, record in enumerate(ctx.records):
            parsed, result = self.validator.check_company(record)
            if parsed is None:
                is_dict = isinstance(record, dict)
                ctx.outcomes[index] = RecordOutcome(
                    url=payload.url_of(record) if is_dict else None,
                    name=payload.name_of(record) if is_dict else None,
                    status="error",
                    message="; ".join(result.errors),
                )
                continue
            valid.append((index, parsed))
        ctx.companies = valid
        ctx.meta["validation_stats"] = self.validator.get_validation_stats()
        return ctx
