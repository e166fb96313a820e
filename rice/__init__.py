"""rice — opinionated terminal environment installer."""

__version__ = "1.0.0"
