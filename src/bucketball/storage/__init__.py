"""DuckDB persistence: schema, users, rounds/bets/results, house wallet, stats."""
