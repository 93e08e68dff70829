"""Deadline tracking and alerting engine."""
