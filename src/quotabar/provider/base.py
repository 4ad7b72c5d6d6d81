from typing import Protocol

from quotabar.config import SecondaryConfig
from quotabar.models import SecondarySnapshot, UsageSnapshot

# per-request ceiling so a hung upstream cannot block the polling loop
REQUEST_TIMEOUT_SECONDS = 30.0

# error bodies are truncated to this many characters in messages
BODY_EXCERPT_CHARS = 500


class PrimaryUsageFetcher(Protocol):
    """
    PrimaryUsageFetcher performs the mandatory usage call of a cycle.
    Implementations raise UpstreamRequestFailed or
    UpstreamResponseInvalid on failure.
    """

    @property
    def name(self) -> "str": ...

    async def fetch(self, token: "str") -> "UsageSnapshot": ...

    async def close(self) -> "None": ...


class SecondaryUsageFetcher(Protocol):
    """
    SecondaryUsageFetcher performs the optional supplementary call.
    It is only invoked when a SecondaryConfig is present.
    """

    @property
    def name(self) -> "str": ...

    async def fetch(self, config: "SecondaryConfig") -> "SecondarySnapshot": ...

    async def close(self) -> "None": ...
