from quotabar.models import CombinedSnapshot, SecondarySnapshot, UsageSnapshot


def combine(
    primary: "UsageSnapshot",
    secondary: "SecondarySnapshot | None" = None,
) -> "CombinedSnapshot":
    """
    merges the primary snapshot with whatever secondary result the cycle
    produced. Both inputs are passed through untouched.
    """
    return CombinedSnapshot(primary=primary, secondary=secondary)
