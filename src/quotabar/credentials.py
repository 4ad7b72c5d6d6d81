import json
import time
from pathlib import Path

from quotabar.errors import CredentialMalformed, CredentialUnreadable
from quotabar.models import Credential

# tokens expiring within this margin are treated as already expired
EXPIRY_MARGIN_MS = 30_000

DEFAULT_CREDENTIALS_PATH = Path.home() / ".claude" / ".credentials.json"


class CredentialReader:
    """
    CredentialReader loads the OAuth access token written by the Claude
    CLI. The file is read on every call: another process refreshes the
    token in place and the new value must be picked up without restart.
    """

    def __init__(self, path: "Path" = DEFAULT_CREDENTIALS_PATH) -> "None":
        self._path = Path(path)

    @property
    def path(self) -> "Path":
        return self._path

    def read(self) -> "Credential":
        """
        reads and decodes the credential file. Raises CredentialUnreadable
        when the file cannot be read and CredentialMalformed when its
        content is not a token record.
        """
        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise CredentialUnreadable(
                f"Failed to read credentials: {e.strerror or e}"
            ) from e
        except UnicodeDecodeError as e:
            raise CredentialMalformed(f"Failed to decode credentials: {e}") from e

        try:
            oauth = json.loads(content)["claudeAiOauth"]
            access_token = oauth["accessToken"]
            expires_at = oauth["expiresAt"]
        except (ValueError, KeyError, TypeError) as e:
            raise CredentialMalformed(f"Failed to parse credentials: {e!r}") from e

        # bool is an int subclass, reject it explicitly
        if not isinstance(access_token, str) or not access_token:
            raise CredentialMalformed("accessToken must be a non-empty string")
        if isinstance(expires_at, bool) or not isinstance(expires_at, int):
            raise CredentialMalformed("expiresAt must be an integer timestamp")

        return Credential(access_token=access_token, expires_at=expires_at)


def is_expired(
    credential: "Credential",
    margin_ms: "int" = EXPIRY_MARGIN_MS,
    now_ms: "int | None" = None,
) -> "bool":
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return now_ms + margin_ms >= credential.expires_at
