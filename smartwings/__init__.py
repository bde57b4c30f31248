# smartwings/__init__.py
"""SmartWings flight booking wizard."""

__version__ = "0.1.0"
