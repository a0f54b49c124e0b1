"""Terminal dashboard for Linux pressure-stall information."""
