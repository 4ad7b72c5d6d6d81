from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from quotabar.models import SecondarySnapshot, UsageSnapshot


class MetricsUpdater:
    """
    exposes the coordinator's own health and the latest utilization
    values as Prometheus metrics.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._cycle_duration: "Histogram" = Histogram(
            "quotabar_fetch_cycle_duration_seconds",
            "Duration of fetch cycles",
            registry=registry,
        )
        self._cycles: "Counter" = Counter(
            "quotabar_fetch_cycles_total",
            "Total number of fetch cycles by trigger and resulting token status",
            ["trigger", "status"],
            registry=registry,
        )
        self._fetch_errors: "Counter" = Counter(
            "quotabar_fetch_errors_total",
            "Total number of failed upstream fetches by source",
            ["source"],
            registry=registry,
        )
        self._last_success: "Gauge" = Gauge(
            "quotabar_last_fetch_success_timestamp_seconds",
            "Unix timestamp of the last successful primary fetch",
            registry=registry,
        )
        self._utilization: "Gauge" = Gauge(
            "quotabar_utilization_percent",
            "Latest utilization per source and meter",
            ["source", "meter"],
            registry=registry,
        )
        self._poll_interval: "Gauge" = Gauge(
            "quotabar_poll_interval_seconds",
            "Current polling interval",
            registry=registry,
        )

    def observe_cycle(
        self, trigger: "str", status: "str", duration_seconds: "float"
    ) -> "None":
        self._cycles.labels(trigger=trigger, status=status).inc()
        self._cycle_duration.observe(duration_seconds)

    def inc_fetch_error(self, source: "str") -> "None":
        self._fetch_errors.labels(source=source).inc()

    def set_last_success(self, timestamp: "float") -> "None":
        self._last_success.set(timestamp)

    def set_poll_interval(self, seconds: "int") -> "None":
        self._poll_interval.set(seconds)

    def update_primary(self, source: "str", snapshot: "UsageSnapshot") -> "None":
        """
        sets one utilization gauge per meter present in the snapshot.
        """
        for meter_name, meter in snapshot.meters().items():
            self._utilization.labels(source=source, meter=meter_name).set(
                meter.utilization
            )
        if snapshot.extra_usage is not None:
            self._utilization.labels(source=source, meter="extra_usage").set(
                snapshot.extra_usage.utilization
            )

    def update_secondary(
        self, source: "str", snapshot: "SecondarySnapshot"
    ) -> "None":
        self._utilization.labels(source=source, meter="monthly").set(
            snapshot.utilization
        )
