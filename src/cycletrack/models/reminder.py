"""
Reminder model: a scheduled message that the sweep delivers exactly once.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, Index

from .base import Base, utcnow


class Reminder(Base):
    """
    Model for scheduled reminders.

    Timestamps are naive UTC. `payload` holds opaque data supplied by the
    caller (for example a generated wellness insight) and is never read by
    the core.
    """
    __tablename__ = 'reminders'

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Owning subject
    subject_id = Column(String(64), nullable=False, index=True)

    # Reminder details
    category = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False, default='')
    message = Column(Text, nullable=False)
    payload = Column(JSON, nullable=True)
    priority = Column(String(10), nullable=False, default='medium')

    # Delivery
    due_at = Column(DateTime, nullable=False)
    sent = Column(Boolean, default=False, nullable=False)
    sent_at = Column(DateTime, nullable=True)

    # Timestamp
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('ix_reminders_sent_due_at', 'sent', 'due_at'),
        Index('ix_reminders_subject_category_sent', 'subject_id', 'category', 'sent'),
    )

    def __repr__(self):
        """String representation of the Reminder model."""
        return (
            f"<Reminder(id={self.id}, "
            f"subject_id='{self.subject_id}', "
            f"category='{self.category}', "
            f"due_at={self.due_at}, "
            f"sent={self.sent})>"
        )

    def to_dict(self):
        """JSON-ready representation."""
        return {
            'id': self.id,
            'subjectId': self.subject_id,
            'category': self.category,
            'title': self.title,
            'message': self.message,
            'payload': self.payload,
            'priority': self.priority,
            'dueAt': self.due_at.isoformat() if self.due_at else None,
            'sent': self.sent,
            'sentAt': self.sent_at.isoformat() if self.sent_at else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
