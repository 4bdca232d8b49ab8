"""
Core modules for the doubt resolver.

This package contains the classification, routing, cost accounting,
rate limiting and orchestration logic of the resolution pipeline.
"""
