"""State layer.

This package owns the persisted bus cache, the single source of truth for
bus state between reconciliation passes.
"""
