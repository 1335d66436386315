"""
Orbit Core Test Suite.

- unit/: per-tier, per-provider and engine tests
- integration/: coordinator + analysis engine end to end
- conftest.py: shared fixtures (frozen clock, contexts, event factory)

Run tests with: pytest
"""
