"""
Admin overview counters.

Every figure is an exact PostgREST count (`Prefer: count=exact`), issued
one after another.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from olla.core.errors import QueryFailedError
from olla.models.user import User
from olla.services.backend_client import BackendClient, BackendError

logger = logging.getLogger("olla")

RECENT_USERS_LIMIT = 5

# (output key, table, PostgREST filters)
COUNTERS = (
    ("totalUsers", "users", {}),
    ("proUsers", "users", {"pro": "eq.true"}),
    ("adminUsers", "users", {"admin": "eq.true"}),
    ("totalBusinesses", "businesses", {}),
    ("activeBusinesses", "businesses", {"active": "eq.true"}),
    ("totalSubscriptions", "user_subscriptions", {}),
    ("activeSubscriptions", "user_subscriptions", {"status": "eq.active"}),
    ("totalTags", "business_tags", {}),
    ("nfcTags", "business_tags", {"tag_type": "eq.NFC"}),
    ("qrTags", "business_tags", {"tag_type": "eq.QRC"}),
)


def month_start(now: datetime) -> datetime:
    return now.astimezone(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


async def overview_stats(client: BackendClient, *, now: Optional[datetime] = None) -> Dict[str, object]:
    now = now or datetime.now(timezone.utc)
    try:
        stats: Dict[str, object] = {}
        for key, table, filters in COUNTERS:
            stats[key] = await client.count(table, filters)
        stats["newUsersThisMonth"] = await client.count(
            "users", {"created_at": f"gte.{month_start(now).isoformat()}"}
        )
        rows = await client.select(
            "users",
            {
                "select": "id,user_firstname,user_lastname,user_email,pro,created_at",
                "order": "created_at.desc",
                "limit": str(RECENT_USERS_LIMIT),
            },
        )
    except BackendError as e:
        logger.error(f"[admin] stats query failed: {e}", extra={"event_type": "admin.stats_failed"})
        raise QueryFailedError(e.message) from e

    stats["recentUsers"] = [User.model_validate(row).model_dump() for row in rows]
    return stats
