"""
Cutshop: cutting job tracking with per-sheet status and live updates.
"""

__version__ = "0.1.0"
