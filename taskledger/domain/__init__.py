"""Domain layer: pure models and rules, no I/O."""
