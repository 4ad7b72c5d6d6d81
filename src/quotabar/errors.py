class QuotabarError(Exception):
    """
    base class for every error raised by quotabar.
    """


class CredentialError(QuotabarError):
    pass


class CredentialUnreadable(CredentialError):
    """
    the credential file could not be read (missing, permission denied).
    """


class CredentialMalformed(CredentialError):
    """
    the credential file was read but its content is not a valid token record.
    """


class UpstreamError(QuotabarError):
    pass


class UpstreamRequestFailed(UpstreamError):
    """
    network level failure: connection error, timeout.
    """


class UpstreamResponseInvalid(UpstreamError):
    """
    the upstream answered, but with a non-success status or an
    undecodable body.
    """


class ConfigInvalid(QuotabarError):
    pass


class IntervalOutOfRange(QuotabarError, ValueError):
    pass


class NotYetAvailable(QuotabarError, LookupError):
    """
    raised by the state store until the first successful primary fetch.
    """
