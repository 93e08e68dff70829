"""Temporal workflows, activities and worker for scheduled deadline checks."""
