"""ghp: lifecycle event hooks and resilient GitHub API calls."""

__version__ = "0.1.0"
