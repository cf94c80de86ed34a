"""
Registration model: one seat held by one user at one event.

Key design decisions:
- Unique constraint on (event_id, user_id) is the authoritative duplicate check;
  the admission path never pre-checks for an existing row
- Foreign key on user_id turns a dangling user reference into an integrity error
- Cancellation deletes the row, so COUNT(*) per event is the registered count
"""

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint

from eventreg.db.base import Base, TimestampMixin


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_registration_event_user"),
    )

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, event={self.event_id}, user={self.user_id})>"
