"""
ops_services -- stateful orchestration over the modules and engines.

- ``operations.OperationsService``: facade wiring every component from
  configuration and archiving issued receipts.
- ``persistence.StateRepository``: SQL save/load of the full state.
"""
