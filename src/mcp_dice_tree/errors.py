class DiceError(ValueError):
    """User-facing validation errors (fail-fast, nothing evaluated)."""
