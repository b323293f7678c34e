"""Routing — compiled path matchers, layers, and per-request execution stacks.

Layers and routes are registered during setup and frozen with the app;
execution stacks are built fresh for every request.
"""
