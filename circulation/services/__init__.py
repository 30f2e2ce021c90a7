"""Library Circulation - Services Package

This package contains service modules for talking to the circulation API:
- HTTP client abstraction
"""
