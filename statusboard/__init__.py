"""statusboard: HTTP service monitor with a Slack status board."""

__version__ = "0.1.0"
