"""Outbound calls to customer-controlled endpoints."""
