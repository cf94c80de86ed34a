"""
Event model.

Key design decisions:
- No denormalized seat counter: the registered count is always derived from
  the registrations table inside the transaction that holds the event row lock
- Index on `date` for the upcoming-events listing (date > now ORDER BY date, location)
"""

from sqlalchemy import Column, Integer, String, Index, CheckConstraint

from eventreg.db.base import Base, TimestampMixin, UTCDateTime


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    date = Column(UTCDateTime, nullable=False)
    location = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_event_capacity_positive"),
        Index("ix_events_date_location", "date", "location"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, date={self.date}, capacity={self.capacity})>"
