"""tilescript - compiles triggerable tile behaviors into automation step programs."""

__version__ = "0.4.0"
