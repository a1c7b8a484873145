# Authentication module.
# Wraps the Supabase auth endpoints and tracks the signed-in session.

from .session import AuthError, AuthServiceUnavailableError, AuthSessionProvider, Session, SupabaseAuth

__all__ = ["AuthError", "AuthServiceUnavailableError", "AuthSessionProvider", "Session", "SupabaseAuth"]
