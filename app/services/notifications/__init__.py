"""Outbound alert notifications."""
