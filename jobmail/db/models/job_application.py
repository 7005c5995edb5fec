"""
Job application model - one generated email per application.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from jobmail.db.base import Base

DRAFT = "draft"
SENT = "sent"
ARCHIVED = "archived"
APPLICATION_STATUSES = (DRAFT, SENT, ARCHIVED)


class JobApplication(Base):
    """
    Job application with its generated email.

    Status moves draft -> sent -> archived (or draft -> archived) and never back.
    sent_at is set only while status is "sent".
    """
    __tablename__ = "job_applications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    company_name = Column(String, nullable=False, index=True)
    job_title = Column(String, nullable=False, index=True)
    job_description = Column(Text, nullable=True)
    additional_details = Column(Text, nullable=True)
    resume_url = Column(String, nullable=True)

    generated_email = Column(Text, nullable=False)
    status = Column(String, nullable=False, default=DRAFT)
    sent_at = Column(DateTime, nullable=True)

    # Airtable record id; empty when mirroring has not succeeded (yet)
    mirror_record_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_job_applications_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<JobApplication(id={self.id}, company='{self.company_name}', status='{self.status}')>"
