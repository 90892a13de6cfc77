"""tdi - a to-do command line client that signs in with OAuth 2.0."""

__version__ = "0.1.0"
