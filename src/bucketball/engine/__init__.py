"""Outcome selection, payout passes, round settlement and the house wallet ledger."""
