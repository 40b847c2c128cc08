"""Rate limiting adapters.

Two independent admission algorithms behind one ``allow()`` interface: a
fixed-window counter over a pluggable counter store, and a self-contained
token bucket.
"""
