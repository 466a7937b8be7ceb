"""Local cloud bridge for Cecotec Conga robot vacuums."""

__version__ = "0.1.0"
