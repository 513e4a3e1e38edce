# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for sent and failed notifications."""

from prometheus_client import CollectorRegistry, Counter, generate_latest


class MailMetrics:
    """Wrapper around the Prometheus registry used by the task."""

    def __init__(self, registry: CollectorRegistry | None = None):
        """Create counters inside the provided registry."""
        self.registry = registry or CollectorRegistry()
        self.sent = Counter("mail_notifier_sent_total", "Total sent emails", registry=self.registry)
        self.errors = Counter(
            "mail_notifier_errors_total",
            "Total failed sends by stage",
            ["stage"],
            registry=self.registry,
        )

    def inc_sent(self) -> None:
        self.sent.inc()

    def inc_error(self, stage: str) -> None:
        """Increase the ``errors`` counter for ``stage`` (prepare, connect, auth, send)."""
        self.errors.labels(stage=stage or "unknown").inc()

    def generate_latest(self) -> bytes:
        """Return the latest metrics snapshot in Prometheus text format."""
        return generate_latest(self.registry)
