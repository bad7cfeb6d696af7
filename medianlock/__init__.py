"""MedianLock: median-gap confidence engine for player propositions."""

__version__ = "0.1.0"
