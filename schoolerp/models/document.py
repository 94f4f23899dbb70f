from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field


class StudentDocument(Document):
    """A file a student uploaded (certificates, ID proofs)."""
    school_id: Indexed(str)
    student_id: Indexed(str)
    title: str
    type: Optional[str] = None
    description: Optional[str] = None
    file_url: str
    uploaded_by: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "student_documents"
        use_state_management = True
