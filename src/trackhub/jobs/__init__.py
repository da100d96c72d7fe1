"""Per-source cycles and the scheduler that repeats them."""
