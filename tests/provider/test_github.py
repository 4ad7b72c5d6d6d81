import httpx
import pytest
import respx

from quotabar.config import SecondaryConfig
from quotabar.errors import UpstreamRequestFailed, UpstreamResponseInvalid
from quotabar.provider.github import GITHUB_API_URL, GitHubPremiumRequestFetcher

USAGE_URL = (
    f"{GITHUB_API_URL}/users/octocat/settings/billing/premium_request/usage"
)

CONFIG = SecondaryConfig(username="octocat", token="ghp_test", monthly_limit=300.0)


class TestGitHubPremiumRequestFetcher:
    @pytest.mark.asyncio
    @respx.mock
    async def test_sums_usage_items(self) -> "None":
        route = respx.get(USAGE_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "timePeriod": {"year": 2026, "month": 10},
                    "user": "octocat",
                    "usageItems": [
                        {"model": "gpt-5", "grossQuantity": 100},
                        {"model": "claude-sonnet-4", "grossQuantity": 15.5},
                        # quantity without a model still counts
                        {"product": "copilot", "grossQuantity": 4.5},
                        # entries without a quantity are skipped
                        {"model": "o3"},
                    ],
                },
            )
        )

        fetcher = GitHubPremiumRequestFetcher()
        snapshot = await fetcher.fetch(CONFIG)
        await fetcher.close()

        assert snapshot.total_requests == 120.0
        assert snapshot.monthly_limit == 300.0
        assert snapshot.utilization == 40.0
        assert [item.model for item in snapshot.items] == ["gpt-5", "claude-sonnet-4"]
        assert snapshot.items[1].gross_quantity == 15.5
        assert snapshot.resets_at.endswith("-01T00:00:00+00:00")

        request = route.calls.last.request
        assert request.headers["Authorization"] == "token ghp_test"
        assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"

    @pytest.mark.asyncio
    @respx.mock
    async def test_username_is_escaped_in_path(self) -> "None":
        route = respx.get(url__startswith=f"{GITHUB_API_URL}/users/").mock(
            return_value=httpx.Response(200, json={"usageItems": []})
        )
        config = SecondaryConfig(username="../orgs/evil", token="ghp_test")

        fetcher = GitHubPremiumRequestFetcher()
        await fetcher.fetch(config)
        await fetcher.close()

        raw_path = route.calls.last.request.url.raw_path
        assert raw_path == (
            b"/users/..%2Forgs%2Fevil/settings/billing/premium_request/usage"
        )

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_usage_items_is_invalid_response(self) -> "None":
        respx.get(USAGE_URL).mock(return_value=httpx.Response(200, json={}))

        fetcher = GitHubPremiumRequestFetcher()
        with pytest.raises(UpstreamResponseInvalid):
            await fetcher.fetch(CONFIG)

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_success_status_is_invalid_response(self) -> "None":
        respx.get(USAGE_URL).mock(
            return_value=httpx.Response(404, json={"message": "Not Found"})
        )

        fetcher = GitHubPremiumRequestFetcher()
        with pytest.raises(UpstreamResponseInvalid) as excinfo:
            await fetcher.fetch(CONFIG)
        assert "404" in str(excinfo.value)

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_is_request_failed(self) -> "None":
        respx.get(USAGE_URL).mock(side_effect=httpx.ConnectError("refused"))

        fetcher = GitHubPremiumRequestFetcher()
        with pytest.raises(UpstreamRequestFailed):
            await fetcher.fetch(CONFIG)
