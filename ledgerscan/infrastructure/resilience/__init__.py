"""Remote Call Resilience Implementations.

Contains the retry policy (bounded exponential backoff with an absent-entity
short-circuit) and the concurrency limiter shared by every pipeline of a run.
Bounded Context: Remote Call Resilience
"""
