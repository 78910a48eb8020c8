"""Variant selection for cliperf.

Decides which of the many declared benchmark variants actually run:
hard constraints remove invalid combinations, default inference narrows
dimensions the user did not mention, and the user's own filters come last.
"""
