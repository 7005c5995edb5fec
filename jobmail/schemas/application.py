"""
Pydantic schemas for job application endpoints.
"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, HttpUrl, field_validator


class ApplicationCreate(BaseModel):
    """Schema for creating a job application."""
    company_name: str = Field(..., description="Company name", min_length=1, max_length=255)
    job_title: str = Field(..., description="Job title", min_length=1, max_length=255)
    job_description: Optional[str] = Field(None, description="Job description")
    additional_details: Optional[str] = Field(None, description="Anything else to mention in the email")
    resume_url: Optional[HttpUrl] = Field(None, description="Link to the applicant's resume")

    @field_validator("company_name", "job_title", "job_description", "additional_details", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v

    def to_details(self) -> dict:
        details = self.model_dump()
        details["resume_url"] = str(self.resume_url) if self.resume_url else None
        return details

    class Config:
        json_schema_extra = {
            "example": {
                "company_name": "Tech Corp",
                "job_title": "Senior Software Engineer",
                "job_description": "the team builds developer tooling used by millions.",
                "additional_details": "Available to start in January.",
                "resume_url": "https://example.com/resume.pdf"
            }
        }


class ApplicationContentUpdate(BaseModel):
    """Schema for replacing the generated email."""
    generated_email: str = Field(..., min_length=1, description="Edited email text")


class ApplicationResponse(BaseModel):
    """Schema for job application response."""
    id: int
    user_id: int
    company_name: str
    job_title: str
    job_description: Optional[str] = None
    additional_details: Optional[str] = None
    resume_url: Optional[str] = None
    generated_email: str
    status: str
    sent_at: Optional[datetime] = None
    mirror_record_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApplicationCreatedResponse(BaseModel):
    application: ApplicationResponse
    remaining_credits: int


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    total: int
