"""Error-colored rendering of differential-trace computation graphs."""

__version__ = "1.0.0"
