"""Session tracking, progress ledgers and context restoration."""
