"""Domain layer: ports, models, events and errors."""
