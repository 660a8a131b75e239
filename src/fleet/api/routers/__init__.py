"""API routers package.

Each router module owns one API domain (heartbeats, assignments, progress,
workers, studies) and delegates to :mod:`fleet.ops` for the work.

Tags:
    fleet-core, api, routers, REST
"""
