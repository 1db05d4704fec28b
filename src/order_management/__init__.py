"""Fulfillment order management service."""
