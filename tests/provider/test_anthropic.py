import httpx
import pytest
import respx

from quotabar.errors import UpstreamRequestFailed, UpstreamResponseInvalid
from quotabar.provider.anthropic import (
    ANTHROPIC_BETA,
    ANTHROPIC_USAGE_URL,
    AnthropicUsageFetcher,
)


class TestAnthropicUsageFetcher:
    @pytest.mark.asyncio
    @respx.mock
    async def test_fetches_and_parses_usage(self) -> "None":
        route = respx.get(ANTHROPIC_USAGE_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "five_hour": {
                        "utilization": 12.5,
                        "resets_at": "2026-10-19T15:00:00+00:00",
                    },
                    "seven_day": {
                        "utilization": 44.0,
                        "resets_at": "2026-10-24T08:00:00+00:00",
                    },
                    "seven_day_opus": None,
                    "seven_day_sonnet": {"utilization": 3.0, "resets_at": None},
                    "extra_usage": {
                        "is_enabled": False,
                        "monthly_limit": 0,
                        "used_credits": 0,
                        "utilization": 0,
                    },
                },
            )
        )

        fetcher = AnthropicUsageFetcher()
        snapshot = await fetcher.fetch("sk-ant-oat-test")
        await fetcher.close()

        assert snapshot.five_hour.utilization == 12.5
        assert snapshot.seven_day.utilization == 44.0
        assert snapshot.seven_day_opus is None
        assert snapshot.seven_day_sonnet is not None
        assert snapshot.seven_day_sonnet.utilization == 3.0
        assert snapshot.extra_usage is not None
        assert snapshot.extra_usage.is_enabled is False

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sk-ant-oat-test"
        assert request.headers["anthropic-beta"] == ANTHROPIC_BETA

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_success_status_is_invalid_response(self) -> "None":
        respx.get(ANTHROPIC_USAGE_URL).mock(
            return_value=httpx.Response(401, text="invalid token " + "x" * 1000)
        )

        fetcher = AnthropicUsageFetcher()
        with pytest.raises(UpstreamResponseInvalid) as excinfo:
            await fetcher.fetch("sk-ant-oat-test")

        message = str(excinfo.value)
        assert "401" in message
        # body excerpt is truncated
        assert len(message) < 600

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_mandatory_meter_is_invalid_response(self) -> "None":
        respx.get(ANTHROPIC_USAGE_URL).mock(
            return_value=httpx.Response(
                200, json={"five_hour": {"utilization": 1.0}}
            )
        )

        fetcher = AnthropicUsageFetcher()
        with pytest.raises(UpstreamResponseInvalid):
            await fetcher.fetch("sk-ant-oat-test")

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_body_is_invalid_response(self) -> "None":
        respx.get(ANTHROPIC_USAGE_URL).mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>")
        )

        fetcher = AnthropicUsageFetcher()
        with pytest.raises(UpstreamResponseInvalid):
            await fetcher.fetch("sk-ant-oat-test")

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_is_request_failed(self) -> "None":
        respx.get(ANTHROPIC_USAGE_URL).mock(
            side_effect=httpx.ConnectTimeout("timed out")
        )

        fetcher = AnthropicUsageFetcher()
        with pytest.raises(UpstreamRequestFailed) as excinfo:
            await fetcher.fetch("sk-ant-oat-secret")

        assert "sk-ant-oat-secret" not in str(excinfo.value)
