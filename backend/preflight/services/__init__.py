"""Services Layer — async orchestration of the readiness checks.

Invariants:
    - Single-threaded asyncio: callbacks run synchronously, fetches run as tasks
    - Every upstream failure is caught at the fetch boundary and degrades one signal

Design Decisions:
    - One component per check, wired through Signal publishers (ADR: no god objects)
"""
