# caseload_calendar/models/meeting.py
from sqlalchemy import Column, String, Text

from caseload_calendar.db.base import Base


class MeetingRow(Base):
    __tablename__ = "meetings"

    id = Column(String(64), primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    date = Column(String(40), nullable=False, index=True)
    end_time = Column(String(40), nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<MeetingRow id={self.id} title={self.title!r} date={self.date}>"
