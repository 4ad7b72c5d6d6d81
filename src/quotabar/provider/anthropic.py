import httpx
import structlog

from quotabar.errors import UpstreamRequestFailed, UpstreamResponseInvalid
from quotabar.models import UsageSnapshot
from quotabar.provider.base import BODY_EXCERPT_CHARS, REQUEST_TIMEOUT_SECONDS

logger = structlog.get_logger()

ANTHROPIC_USAGE_URL = "https://api.anthropic.com/api/oauth/usage"
ANTHROPIC_BETA = "oauth-2025-04-20"


class AnthropicUsageFetcher:
    """
    AnthropicUsageFetcher implements the PrimaryUsageFetcher protocol for
    the OAuth usage endpoint used by Claude subscriptions. The token is
    passed per call since it is re-read from disk every cycle.
    """

    def __init__(self, client: "httpx.AsyncClient | None" = None) -> "None":
        self._client: "httpx.AsyncClient" = client or httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT_SECONDS,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "anthropic-beta": ANTHROPIC_BETA,
            },
        )

    @property
    def name(self) -> "str":
        return "anthropic"

    async def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        await self._client.aclose()

    async def fetch(self, token: "str") -> "UsageSnapshot":
        logger.debug("anthropic_fetch_usage", url=ANTHROPIC_USAGE_URL)
        try:
            resp = await self._client.get(
                ANTHROPIC_USAGE_URL,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            # the exception type is enough, the request may carry the token
            raise UpstreamRequestFailed(
                f"HTTP request failed: {type(e).__name__}"
            ) from e

        if not resp.is_success:
            raise UpstreamResponseInvalid(
                f"API returned status {resp.status_code}: "
                f"{resp.text[:BODY_EXCERPT_CHARS]}"
            )

        try:
            snapshot = UsageSnapshot.from_dict(resp.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise UpstreamResponseInvalid(
                f"Failed to parse response: {e!r}. "
                f"Body: {resp.text[:BODY_EXCERPT_CHARS]}"
            ) from e

        logger.debug(
            "anthropic_usage_done",
            five_hour=snapshot.five_hour.utilization,
            seven_day=snapshot.seven_day.utilization,
        )
        return snapshot
