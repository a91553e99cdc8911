# caseload_calendar/models/schedule_template.py
from sqlalchemy import JSON, Boolean, Column, Integer, String, Text

from caseload_calendar.db.base import Base


class ScheduleTemplateRow(Base):
    """
    Stored recurring (or one-time) appointment definition.

    Dates and times are kept as the strings clients sent; parsing happens in
    the occurrence engine's input normalizer.
    """

    __tablename__ = "schedule_templates"

    id = Column(String(64), primary_key=True, index=True)

    participant_ids = Column(JSON, nullable=False, default=list)
    recurrence_pattern = Column(String(32), nullable=False, default="weekly")
    days_of_week = Column(JSON, nullable=False, default=list)
    specific_dates = Column(JSON, nullable=False, default=list)

    start_date = Column(String(32), nullable=False)
    end_date = Column(String(32), nullable=True)
    start_time = Column(String(16), nullable=False)
    end_time = Column(String(16), nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    cancelled_dates = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True)

    goal_ids = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    is_direct_services = Column(Boolean, nullable=False, default=True)

    date_created = Column(String(40), nullable=True)
    date_updated = Column(String(40), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ScheduleTemplateRow id={self.id} pattern={self.recurrence_pattern} "
            f"start={self.start_date} {self.start_time}>"
        )
