"""Data core of the India Violence Tracker dashboard."""

__version__ = '0.1.0'
