"""Service layer.

- ``_shared``: base service, domain errors and ports.
- ``tokens``: hashing, issuance, rotation, revocation and validation.
- ``auth``: the facade consumed by the HTTP layer.
"""
