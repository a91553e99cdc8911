# caseload_calendar/models/session_record.py
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text, func

from caseload_calendar.db.base import Base


class SessionRecordRow(Base):
    """
    One logged session for one student. Group sessions share `group_session_id`.
    """

    __tablename__ = "session_records"

    id = Column(String(64), primary_key=True, index=True)

    # Insertion order, used to break matching ties by creation order.
    seq = Column(Integer, nullable=False, index=True, default=0)

    participant_id = Column(String(64), nullable=False, index=True)
    date = Column(String(40), nullable=False, index=True)
    end_time = Column(String(40), nullable=True)

    template_id = Column(String(64), nullable=True, index=True)
    group_session_id = Column(String(64), nullable=True, index=True)

    missed = Column(Boolean, nullable=False, default=False)
    is_direct_services = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    goal_ids = Column(JSON, nullable=False, default=list)
    performance_data = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self) -> str:
        return (
            f"<SessionRecordRow id={self.id} participant={self.participant_id} "
            f"date={self.date} template={self.template_id}>"
        )
