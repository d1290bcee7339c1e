"""
Server provisioning service.

An in-memory server store with an asynchronous lifecycle engine that builds,
tears down and purges servers on background transitions.
"""

__version__ = "1.0.0"
