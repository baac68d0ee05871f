"""Sweep result schema."""

from pydantic import BaseModel


class SweepResult(BaseModel):
    """Outcome counters of one scheduled sweep run."""

    job: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
