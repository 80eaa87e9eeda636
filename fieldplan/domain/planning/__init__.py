"""Pure planning algorithms."""
