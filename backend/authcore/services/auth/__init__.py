from .dto import LoginIn, RefreshIn, RegisterIn, UserOut, WhoAmIOut
from .service import AuthService

__all__ = ["AuthService", "LoginIn", "RefreshIn", "RegisterIn", "UserOut", "WhoAmIOut"]
