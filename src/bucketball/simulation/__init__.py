"""Bot-player bankroll simulation."""
