from .presence_register import PresenceRegister, utcnow

__all__ = ["PresenceRegister", "utcnow"]
