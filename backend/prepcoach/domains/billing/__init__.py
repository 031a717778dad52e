"""Billing domain: subscription records, webhook processing, checkout."""
