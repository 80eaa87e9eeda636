"""Domain layer exports."""
