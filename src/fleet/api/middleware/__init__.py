"""API middleware package.

Cross-cutting request concerns: request correlation, timing, and RFC 7807
error mapping.

Tags:
    fleet-core, api, middleware
"""
