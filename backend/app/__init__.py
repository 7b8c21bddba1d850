"""Paid JSON tools: API access gated by an on-chain stablecoin payment."""
