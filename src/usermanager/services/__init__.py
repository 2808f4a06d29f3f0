"""Business services: account directory and rating ledger."""
