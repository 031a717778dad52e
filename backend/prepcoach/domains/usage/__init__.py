"""Usage domain: per-period counters and entitlement decisions."""
