"""Payments module - Square and Stripe payment reconciliation."""
