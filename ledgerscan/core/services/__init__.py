"""Core services: batch scheduling and the holder and balance pipelines."""
