"""Divorce intake: wizard validation, claim documents, submission and recovery sessions."""

__version__ = "0.1.0"
