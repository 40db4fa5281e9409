"""
Proof metrics.

Prometheus counters for proofs issued and verification outcomes, plus a small
in-memory snapshot for tests and debugging.
"""

import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


class ProofMetrics:
    """
    Metrics collector for proof generation and verification.

    Each instance owns its own ``CollectorRegistry`` unless one is passed in,
    so several collectors can coexist in one process.

    Example:
        >>> metrics = ProofMetrics()
        >>> metrics.record_proof_generated()
        >>> metrics.record_verification("accepted")
        >>> metrics.get_stats()["verifications_accepted"]
        1
    """

    def __init__(self, namespace: str = "locproof", registry: Optional[CollectorRegistry] = None):
        self._namespace = namespace
        self._lock = threading.Lock()
        self._counters: Dict[str, float] = {}
        self._durations: List[float] = []
        self.registry = registry or CollectorRegistry()

        self._proofs_generated = Counter(
            f"{namespace}_proofs_generated_total",
            "Total number of proofs generated",
            registry=self.registry,
        )
        self._verifications = Counter(
            f"{namespace}_verifications_total",
            "Total number of proof verifications by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self._verification_seconds = Histogram(
            f"{namespace}_verification_seconds",
            "Proof verification latency in seconds",
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1),
            registry=self.registry,
        )

    def record_proof_generated(self) -> None:
        with self._lock:
            self._counters["proofs_generated"] = self._counters.get("proofs_generated", 0) + 1
        self._proofs_generated.inc()

    def record_verification(self, outcome: str) -> None:
        """Record a verification outcome ("accepted" or a reject reason)."""
        key = f"verifications_{outcome}"
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + 1
        self._verifications.labels(outcome=outcome).inc()

    def record_verification_duration(self, duration_seconds: float) -> None:
        with self._lock:
            self._durations.append(duration_seconds)
        self._verification_seconds.observe(duration_seconds)

    @contextmanager
    def verification_timer(self):
        """Context manager for timing verifications."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record_verification_duration(time.perf_counter() - start)

    def get_stats(self) -> Dict[str, Any]:
        """Current counters as a dictionary."""
        with self._lock:
            stats: Dict[str, Any] = dict(self._counters)
            if self._durations:
                stats["verification_seconds_count"] = len(self._durations)
                stats["verification_seconds_avg"] = sum(self._durations) / len(self._durations)
            return stats

    def get_prometheus_metrics(self) -> bytes:
        """Metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)


_global_metrics: Optional[ProofMetrics] = None


def get_metrics() -> ProofMetrics:
    """Get or create the process-wide metrics instance."""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = ProofMetrics()
    return _global_metrics
