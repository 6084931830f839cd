from .hub import LiveVisitorHub

__all__ = ["LiveVisitorHub"]
