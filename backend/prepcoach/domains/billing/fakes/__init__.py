"""In-memory fakes for billing domain tests."""
