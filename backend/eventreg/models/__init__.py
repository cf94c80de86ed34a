from eventreg.models.user import User
from eventreg.models.event import Event
from eventreg.models.registration import Registration

__all__ = ["User", "Event", "Registration"]
