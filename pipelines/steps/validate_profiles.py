from __future__ import annotations

from models.import_outcome import RecordOutcome
from pipelines.runner import RunContext
from services import payload
from services.validation import ScrapeValidator, format_validation_message


class ValidateScrapedProfiles:
    """Parse raw profile records; rejected records get an `error` outcome and go no further."""

    def __init__(self) -> None:
        self.validator = ScrapeValidator()

    def run(self, ctx: RunContext) -> RunContext:
        ctx.ensure_outcome_slots()
        valid = []
        for index, record in enumerate(ctx.records):
            parsed, result = self.validator.check_profile(record)
            if parsed is None:
                url = payload.url_of(record) if isinstance(record, dict) else None
                name = payload.name_of(record) if isinstance(record, dict) else None
                message = "; ".join(result.errors) or format_validation_message(result)
                ctx.outcomes[index] = RecordOutcome(url=url, name=name, status="error", message=message)
                continue
            valid.append((index, parsed))
        ctx.profiles = valid
        ctx.meta["validation_stats"] = self.validator.get_validation_stats()
        return ctx
