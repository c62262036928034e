"""Socrates: sandboxed C++ execution and test classification."""

__version__ = "1.0.0"
