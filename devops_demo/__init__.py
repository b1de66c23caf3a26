"""DevOps demo service: greeting, health probes and Prometheus metrics."""
