# authcore/infra/sql/principal_loader.py
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from authcore.services._shared.errors import StorageError
from authcore.services._shared.ports import Principal, PrincipalLoader
from authcore.uow import SQLAlchemyReadOnlyUnitOfWork


class SQLAlchemyPrincipalLoader(PrincipalLoader):
    """Load the current identity and roles of a user from the ``users`` table."""

    def load(self, user_id: str) -> Principal | None:
        try:
            pk = int(user_id)
        except (TypeError, ValueError):
            return None
        try:
            with SQLAlchemyReadOnlyUnitOfWork() as uow:
                user = uow.users.get(pk)
                if user is None:
                    return None
                return Principal(
                    user_id=str(user.id),
                    email=user.email,
                    display_name=user.display_name,
                    roles=user.role_set,
                )
        except SQLAlchemyError as exc:
            raise StorageError("Principal lookup failed.") from exc
