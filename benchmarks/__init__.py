"""Performance benchmarks for linproject.

Microbenchmarks for the normalization and projection hot paths on sparse
restriction systems.
"""
