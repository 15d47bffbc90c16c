"""Domain layer: events, models, queue manager and agent drivers."""
