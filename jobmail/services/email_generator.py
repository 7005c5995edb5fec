from typing import Dict, Optional


# ✅ APPLICATION EMAIL GENERATOR
def generate_email_content(
    company_name: str,
    job_title: str,
    job_description: Optional[str] = None,
    additional_details: Optional[str] = None,
) -> str:
    """
    Build the application email for a job.

    Pure function: the same details always give the same text.
    """
    paragraphs = [
        "Dear Hiring Manager,",
        "I hope this email finds you well. I am writing to express my strong interest "
        f"in the {job_title} position at {company_name}.",
    ]

    if job_description:
        paragraphs.append(f"I was particularly drawn to this role because {job_description}")

    if additional_details:
        paragraphs.append(f"Additional Information: {additional_details}")

    paragraphs.extend([
        "I have attached my resume for your review.",
        "Thank you for considering my application.",
        "Best regards,\n[Your Name]",
    ])

    return "\n\n".join(paragraphs)


def generate_from_details(details: Dict[str, Optional[str]]) -> str:
    """Dict-based entry point, keyed like ApplicationCreate fields."""
    return generate_email_content(
        company_name=details["company_name"],
        job_title=details["job_title"],
        job_description=details.get("job_description"),
        additional_details=details.get("additional_details"),
    )
