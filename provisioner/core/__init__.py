"""
Core functionality for server lifecycle management.

This package provides:
- State machine for the server lifecycle
- Thread-safe, copy-on-access resource store
- Transition scheduler for delayed background state changes
- Lifecycle engine orchestrating provision and decommission

Import directly from submodules:
# from provisioner.core.state_machine import ServerStateMachine
# from provisioner.core.resource_store import InMemoryResourceStore
# from provisioner.core.transition_scheduler import TransitionScheduler
# from provisioner.core.lifecycle_engine import LifecycleEngine
"""
