"""Turn raw exam text into a self-graded quiz with synthesized listening audio."""

__version__ = "0.1.0"
