"""Issue-Type aggregator: one unpaginated read of the organization taxonomy."""

from urllib.parse import quote

from orgboard.api.parsers import parse_issue_type
from orgboard.cache import CacheKeys
from orgboard.logging import log_timing
from orgboard.models import IssueTypes
from orgboard.services.swr import OrgResource


class IssueTypeAggregator(OrgResource[IssueTypes]):
    """Organization issue types, cached with the long TTL."""

    model = IssueTypes
    resource_kind = CacheKeys.ISSUE_TYPES

    @property
    def ttl(self) -> int:
        return self.settings.cache_ttl_long

    @log_timing("issue_types_load")
    async def _load(self, org: str) -> IssueTypes:
        data = await self.client.rest_get(f"/orgs/{quote(org, safe='')}/issue-types")
        # Bare list or {"issue_types": [...]}
        entries = data.get("issue_types", []) if isinstance(data, dict) else data or []
        return IssueTypes(org=org, types=[parse_issue_type(e) for e in entries])
