"""
Metrics Collection
Prometheus metrics for turn pipeline performance tracking
"""

import time

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class MetricsCollector:
    """
    Collects and exposes Prometheus metrics for the generation service.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.registry = registry

        # Turn metrics
        self.turns_total = Counter(
            "genui_turns_total",
            "Total number of turns",
            ["status"],
            registry=registry,
        )
        self.turn_duration = Histogram(
            "genui_turn_duration_seconds",
            "Turn duration in seconds",
            ["transport"],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
            registry=registry,
        )

        # Intent metrics
        self.intents_total = Counter(
            "genui_intents_total",
            "Resolved intents",
            ["intent", "sticky"],
            registry=registry,
        )

        # LLM metrics
        self.llm_calls_total = Counter(
            "genui_llm_calls_total",
            "Total number of completion calls",
            ["status"],
            registry=registry,
        )
        self.llm_duration = Histogram(
            "genui_llm_duration_seconds",
            "Completion call duration in seconds",
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=registry,
        )
        self.fallbacks_total = Counter(
            "genui_generation_fallbacks_total",
            "Turns served by mock generation after a failed completion call",
            ["reason"],
            registry=registry,
        )

        # Delivery metrics
        self.state_deltas_total = Counter(
            "genui_state_deltas_total",
            "Non-empty patches delivered",
            registry=registry,
        )
        self.patch_operations_total = Counter(
            "genui_patch_operations_total",
            "Patch operations delivered",
            ["op"],
            registry=registry,
        )
        self.stream_events = Counter(
            "genui_stream_events_total",
            "Total number of stream events",
            ["type"],
            registry=registry,
        )

        # Error metrics
        self.errors_total = Counter(
            "genui_errors_total",
            "Total number of errors",
            ["error_type", "component"],
            registry=registry,
        )

        # System metrics
        self.uptime = Gauge(
            "genui_uptime_seconds",
            "Service uptime in seconds",
            registry=registry,
        )
        self.start_time = time.time()

    def record_turn(self, status: str, duration: float, transport: str = "stream") -> None:
        """Record a finished turn."""
        self.turns_total.labels(status=status).inc()
        self.turn_duration.labels(transport=transport).observe(duration)

    def record_intent(self, intent: str, sticky: bool) -> None:
        self.intents_total.labels(intent=intent, sticky=str(sticky).lower()).inc()

    def record_llm_call(self, status: str, duration: float) -> None:
        """Record a completion call."""
        self.llm_calls_total.labels(status=status).inc()
        self.llm_duration.observe(duration)

    def record_fallback(self, reason: str) -> None:
        self.fallbacks_total.labels(reason=reason).inc()

    def record_patch(self, ops: list[str]) -> None:
        """Record one delivered patch by its operation names."""
        self.state_deltas_total.inc()
        for op in ops:
            self.patch_operations_total.labels(op=op).inc()

    def record_stream_event(self, event_type: str) -> None:
        self.stream_events.labels(type=event_type).inc()

    def record_error(self, error_type: str, component: str) -> None:
        """Record an error."""
        self.errors_total.labels(error_type=error_type, component=component).inc()

    def update_uptime(self) -> None:
        """Update the uptime metric."""
        self.uptime.set(time.time() - self.start_time)

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format."""
        self.update_uptime()
        return generate_latest(self.registry)


# Global metrics collector instance
metrics_collector = MetricsCollector()
