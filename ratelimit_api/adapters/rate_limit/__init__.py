"""Rate limit counter stores.

The evaluator talks to ``AbstractWindowStore`` only, so the in-memory store
can later be replaced by a shared one (e.g. Redis) without touching the HTTP
layer.
"""
