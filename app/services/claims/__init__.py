"""Claim lifecycle and case-management services."""
