"""Inference client adapters."""
