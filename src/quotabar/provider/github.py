from urllib.parse import quote

import httpx
import structlog

from quotabar.config import SecondaryConfig
from quotabar.errors import UpstreamRequestFailed, UpstreamResponseInvalid
from quotabar.models import SecondarySnapshot, SecondaryUsageItem
from quotabar.provider.base import BODY_EXCERPT_CHARS, REQUEST_TIMEOUT_SECONDS

logger = structlog.get_logger()

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"


class GitHubPremiumRequestFetcher:
    """
    GitHubPremiumRequestFetcher implements the SecondaryUsageFetcher
    protocol for Copilot premium request billing. The monthly request
    count is summed over usage items and related to the configured
    monthly limit.
    """

    def __init__(self, client: "httpx.AsyncClient | None" = None) -> "None":
        self._client: "httpx.AsyncClient" = client or httpx.AsyncClient(
            base_url=GITHUB_API_URL,
            timeout=REQUEST_TIMEOUT_SECONDS,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": "quotabar",
            },
        )

    @property
    def name(self) -> "str":
        return "github"

    async def close(self) -> "None":
        await self._client.aclose()

    async def fetch(self, config: "SecondaryConfig") -> "SecondarySnapshot":
        username = quote(config.username, safe="")
        path = f"/users/{username}/settings/billing/premium_request/usage"
        logger.debug("github_fetch_usage", username=config.username)
        try:
            resp = await self._client.get(
                path,
                headers={"Authorization": f"token {config.token}"},
            )
        except httpx.HTTPError as e:
            raise UpstreamRequestFailed(
                f"GitHub API request failed: {type(e).__name__}"
            ) from e

        if not resp.is_success:
            raise UpstreamResponseInvalid(
                f"GitHub API status {resp.status_code}: "
                f"{resp.text[:BODY_EXCERPT_CHARS]}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamResponseInvalid(
                f"Failed to parse GitHub response: {e!r}"
            ) from e

        usage_items = data.get("usageItems") if isinstance(data, dict) else None
        if not isinstance(usage_items, list):
            raise UpstreamResponseInvalid("Missing usageItems array")

        total_requests = 0.0
        items: "list[SecondaryUsageItem]" = []
        for raw in usage_items:
            if not isinstance(raw, dict):
                continue
            quantity = raw.get("grossQuantity")
            # bool is a number for isinstance, skip it like any non-number
            if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
                continue

            total_requests += quantity
            model = raw.get("model")
            # quantities without a model still count towards the total
            if isinstance(model, str):
                items.append(
                    SecondaryUsageItem(model=model, gross_quantity=float(quantity))
                )

        snapshot = SecondarySnapshot.from_usage(
            total_requests, items, config.monthly_limit
        )
        logger.debug(
            "github_usage_done",
            total_requests=snapshot.total_requests,
            item_count=len(snapshot.items),
        )
        return snapshot
