"""Counter store adapters used by store-backed limiters."""
