"""pr-inbox: a keyboard-driven terminal inbox for GitHub pull-request notifications."""

__version__ = "0.1.0"
