"""Service Registry Reconciler (SRR).

Keeps a service registry (Consul) in step with a cluster roster (Mesos):
 - registers newly seen masters and agents
 - re-registers entries whose tags changed (e.g. leader election)
 - deregisters entries after one missed pass of grace (mark-and-sweep)
 - persists its bookkeeping cache to a key-value store across restarts

The core (cache, persistence, reconciler) only talks to abstract registry and
key-value capabilities; Consul, Mesos and SQLite adapters sit beside it.
"""
