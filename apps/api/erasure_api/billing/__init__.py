"""Payment provider webhook verification and the idempotent event ledger."""
