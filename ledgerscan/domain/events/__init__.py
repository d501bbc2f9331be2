"""Domain Event definitions.

Represents significant occurrences within a scan run (batch progress, retries,
exhausted lookups) that observers such as the performance tracker react to.
"""
