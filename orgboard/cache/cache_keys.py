"""
Cache key management.

Centralized cache key definitions to:
- Prevent key collisions between aggregators sharing one store
- Enable per-organization invalidation
- Document the persisted layout
"""


class CacheKeys:
    """
    Centralized cache key definitions.

    Naming convention: {resource_kind}:{org} or
    {resource_kind}:{owner}/{repo}#{number}

    Examples:
        - repository_issues:acme -> Issues of acme's most recently pushed repos
        - project_boards:acme -> acme's boards with their issue items
        - issue_types:acme -> acme's issue-type taxonomy
        - issue_timeline:acme/api#42 -> Single issue with its timeline
    """

    # Resource kinds
    REPOSITORY_ISSUES = "repository_issues"
    PROJECT_BOARDS = "project_boards"
    ISSUE_TYPES = "issue_types"
    ISSUE_TIMELINE = "issue_timeline"

    ORG_RESOURCE_KINDS = (REPOSITORY_ISSUES, PROJECT_BOARDS, ISSUE_TYPES)

    # TTLs (in seconds, 0 = never expire)
    TTL_SHORT = 60 * 10       # 10 minutes: org-wide snapshots
    TTL_DAY = 60 * 60 * 24    # 24 hours: low-volatility data
    TTL_FOREVER = 0

    @staticmethod
    def for_org(resource_kind: str, org: str) -> str:
        """Cache key for an organization-wide resource."""
        return f"{resource_kind}:{org}"

    @staticmethod
    def repository_issues(org: str) -> str:
        """Cache key for the organization's repository issues."""
        return CacheKeys.for_org(CacheKeys.REPOSITORY_ISSUES, org)

    @staticmethod
    def project_boards(org: str) -> str:
        """Cache key for the organization's project boards."""
        return CacheKeys.for_org(CacheKeys.PROJECT_BOARDS, org)

    @staticmethod
    def issue_types(org: str) -> str:
        """Cache key for the organization's issue-type taxonomy."""
        return CacheKeys.for_org(CacheKeys.ISSUE_TYPES, org)

    @staticmethod
    def issue_timeline(owner: str, repo: str, number: int) -> str:
        """Cache key for a single issue with its timeline."""
        return f"{CacheKeys.ISSUE_TIMELINE}:{owner}/{repo}#{number}"

    @staticmethod
    def org_keys(org: str) -> list[str]:
        """All organization-wide keys, for bulk invalidation."""
        return [CacheKeys.for_org(kind, org) for kind in CacheKeys.ORG_RESOURCE_KINDS]
