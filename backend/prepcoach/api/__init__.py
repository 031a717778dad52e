"""HTTP layer of the prepcoach backend."""
