"""Core module for shared prepcoach infrastructure."""
