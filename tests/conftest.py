import json
import time
from pathlib import Path
from typing import Callable

import pytest
from prometheus_client import CollectorRegistry


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def write_credentials(tmp_path: "Path") -> "Callable[..., Path]":
    """
    writes a credentials file in the Claude CLI format and returns its path.
    expires_in_ms is relative to now.
    """
    path = tmp_path / ".credentials.json"

    def _write(
        access_token: "str" = "sk-ant-oat-test",
        expires_in_ms: "int" = 3_600_000,
    ) -> "Path":
        path.write_text(
            json.dumps(
                {
                    "claudeAiOauth": {
                        "accessToken": access_token,
                        "refreshToken": "sk-ant-ort-test",
                        "expiresAt": int(time.time() * 1000) + expires_in_ms,
                    }
                }
            )
        )
        return path

    return _write
