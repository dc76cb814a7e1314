# sitemap_scout/report/opportunity.py
"""
"Opportunity" documents: a header describing the sitemap audit plus one
``REDIRECT_UPDATE`` suggestion per redirecting or broken URL, in sitemap order.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sitemap_scout.aggregator import LeafReport

OPPORTUNITY_TYPE = "sitemap"
SUGGESTION_TYPE = "REDIRECT_UPDATE"


def _now_iso(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_suggestions(
    leaf: LeafReport, opportunity_id: str, timestamp: str
) -> List[Dict[str, Any]]:
    suggestions = []
    for rank, record in enumerate(leaf.issues()):
        suggestions.append(
            {
                "id": str(uuid.uuid4()),
                "opportunityId": opportunity_id,
                "type": SUGGESTION_TYPE,
                "rank": rank,
                "status": "NEW",
                "data": {
                    "sitemapUrl": leaf.sitemap_url,
                    "pageUrl": record.url,
                    "type": "url",
                    "error": None if record.status is not None else record.status_label,
                    "urlsSuggested": record.suggested_url or "",
                    "statusCode": record.status,
                },
                "createdAt": timestamp,
                "updatedAt": timestamp,
            }
        )
    return suggestions


def build_opportunity(
    leaf: LeafReport, site_id: str = "", now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Builds a fresh opportunity document for *leaf*."""
    timestamp = _now_iso(now)
    opportunity_id = str(uuid.uuid4())
    return {
        "opportunity": {
            "id": opportunity_id,
            "siteId": site_id,
            "type": OPPORTUNITY_TYPE,
            "origin": "AUTOMATION",
            "title": "Sitemap issues found",
            "status": "NEW",
            "sitemapUrl": leaf.sitemap_url,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        },
        "suggestions": build_suggestions(leaf, opportunity_id, timestamp),
    }


def refresh_opportunity(
    existing: Dict[str, Any], leaf: LeafReport, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Replaces the suggestions of an existing opportunity with the current ones.

    The opportunity id, site id and ``createdAt`` are kept; ``updatedAt`` and
    all suggestion ids are renewed.
    """
    header = dict(existing.get("opportunity") or {})
    if not header.get("id"):
        raise ValueError("existing opportunity document has no opportunity id")
    timestamp = _now_iso(now)
    header["updatedAt"] = timestamp
    header.setdefault("sitemapUrl", leaf.sitemap_url)
    return {
        "opportunity": header,
        "suggestions": build_suggestions(leaf, header["id"], timestamp),
    }
