"""Integration tests for the checkout service.

These tests wire the real API, payment service, retry executor and Stripe
client together, stubbing only the Stripe SDK's network layer.

Run with: pytest -m integration
Skip with: pytest -m "not integration"
"""
