"""Generate and update inner Builder classes for Java value classes."""

__version__ = "0.1.0"
