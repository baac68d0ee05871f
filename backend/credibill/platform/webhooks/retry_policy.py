"""Delay strategy for outgoing webhook retries."""

from dataclasses import dataclass, field

from credibill.core.config import settings


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed schedule of retry delays, in milliseconds.

    The delivery log stores whatever delay it is given; this is where the delay is
    chosen. The delay after the n-th failed attempt is the n-th entry, and the last
    entry repeats if attempts outnumber the schedule.
    """

    delays_ms: tuple[int, ...] = field(default_factory=lambda: (60_000, 300_000, 900_000))

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        """Build the policy from WEBHOOK_RETRY_DELAYS_MS."""
        return cls(delays_ms=tuple(settings.webhook_retry_delays))

    def delay_for(self, failed_attempt: int) -> int:
        """Delay before retrying after attempt number `failed_attempt` failed."""
        if not self.delays_ms:
            return 0
        index = min(max(failed_attempt, 1), len(self.delays_ms)) - 1
        return self.delays_ms[index]
