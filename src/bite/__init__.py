"""bite - personal diet phase and food logging from the command line."""

__version__ = "0.3.0"
