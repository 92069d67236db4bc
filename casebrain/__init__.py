"""Evidence scoring, case momentum and versioned analysis deltas."""

__version__ = "0.1.0"
