"""Real-time bus arrival estimation for stops with and without direct predictions."""

__version__ = "0.1.0"
