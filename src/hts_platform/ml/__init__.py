"""Feature encoding, risk tiers and the remote scoring client."""
