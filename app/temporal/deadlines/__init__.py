"""Daily deadline check workflow, activity and schedule."""
