"""mesa — time a program repeatedly and compare against its history."""

__version__ = "0.2.0"
