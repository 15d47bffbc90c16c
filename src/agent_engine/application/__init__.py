"""Application layer: settings, turn assembly and agent execution."""
