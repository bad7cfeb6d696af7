"""Core data model, configuration and mathematics for the MedianLock engine.

This package contains pure building blocks:

- ``config``   : :class:`EngineConfig`, every threshold in one frozen value
- ``contracts``: candidate, pipeline-record, result and slip DTOs
- ``stats``    : medians, variance and hit rates over historical series
- ``odds_math``: American-odds conversion and price-movement cents

Nothing in this package imports from ``medianlock.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
