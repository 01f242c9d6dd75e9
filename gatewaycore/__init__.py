"""Data types for an AI gateway: requests, model definitions, credentials, guardrails and usage counters."""

__version__ = "0.2.2"