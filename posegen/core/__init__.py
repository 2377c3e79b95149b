"""Core orchestration package.

Architectural role:
    Holds the state controller that sits between the API/CLI adapters and the
    lower-level subsystems (image encoding, prompting, generation), together
    with the shared data contracts and error taxonomy.

Composition:
    - `controller`: action methods and RequestState transitions.
    - `types`: immutable data contracts passed between layers.
    - `errors`: exception hierarchy surfaced to adapters.

Determinism and side effects:
    Package import itself is deterministic and side-effect free.
"""
