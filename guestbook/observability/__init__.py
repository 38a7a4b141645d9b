"""Observability helpers.

Request IDs and JSON logs through structlog contextvars, plus a Prometheus
registry scraped from ``/metrics``.
"""
