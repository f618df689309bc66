"""HTTP boundary for Spendeka."""
