"""Domain packages: billing, usage, coaching."""
