"""Domain models: value objects, run statistics and scan results."""
