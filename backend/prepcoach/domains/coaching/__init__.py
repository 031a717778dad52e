"""Coaching domain: interview preparation backed by a hosted language model."""
