from .principal_loader import SQLAlchemyPrincipalLoader
from .sql_refresh_token_store import SQLAlchemyRefreshTokenStore

__all__ = ["SQLAlchemyPrincipalLoader", "SQLAlchemyRefreshTokenStore"]
