from .session_verifier import AdminSessionVerifier, extract_session_id

__all__ = ["AdminSessionVerifier", "extract_session_id"]
