"""
authcore.infra
==============

Concrete adapters for the service-layer ports:

- :mod:`.sql`   SQLAlchemy refresh-token store and principal loader.
- :mod:`.redis` Redis refresh-token store (WATCH/MULTI/EXEC).
- :mod:`.jwt`   flask-jwt-extended access-token provider.
"""
