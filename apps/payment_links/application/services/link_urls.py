from __future__ import annotations

from django.conf import settings


def full_url(link_id: str) -> str:
    base = (getattr(settings, "PAYSSD_PUBLIC_BASE_URL", "") or "http://localhost:8000").rstrip("/")
    return f"{base}/pay/{link_id}"


def short_url(link_id: str) -> str:
    host = (getattr(settings, "PAYSSD_SHORT_URL_HOST", "") or "payssd.ss/p").rstrip("/")
    return f"{host}/{link_id}"
