from __future__ import annotations

from datetime import datetime

from .types import LinkStatus, PaymentLinkRecord


class LinkStatusResolver:
    """
    Presented status of a persisted link.

    Always recomputed from (enabled, expires_at, now); never stored.
    The enabled flag wins over expiry.
    """

    @staticmethod
    def resolve(*, enabled: bool, expires_at: datetime | None, now: datetime) -> LinkStatus:
        if not enabled:
            return LinkStatus.DISABLED
        if expires_at is not None and expires_at < now:
            return LinkStatus.EXPIRED
        return LinkStatus.ACTIVE

    @classmethod
    def for_record(cls, record: PaymentLinkRecord, *, now: datetime) -> LinkStatus:
        return cls.resolve(enabled=record.enabled, expires_at=record.expires_at, now=now)
