"""Cascade fan-out: unified policy reading and idempotent job upserts."""
