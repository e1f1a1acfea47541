"""Work-hours tracking from editor activity and commit history."""

__version__ = "0.1.0"
