"""Core package: shared enums, errors, settings and logging setup."""
