"""Daily-planning workflow for independent field-service workers."""

__version__ = "0.1.0"
