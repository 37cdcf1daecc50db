"""
Database Schemas for the Portfolio backend

Each Pydantic model represents a MongoDB collection.
Collection name is the lowercase of the class name.

Collections:
- Contactmessage: contact-form submissions
- Project: portfolio projects (stored source only)

GithubProject is derived from the GitHub API on every request and never stored.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field

MESSAGE_STATUSES = ("new", "read", "replied", "archived")

MessageStatus = Literal["new", "read", "replied", "archived"]


class Contactmessage(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    status: MessageStatus = Field("new", description="new|read|replied|archived")
    ip_address: str = "Unknown"
    user_agent: str = "Unknown"


class Project(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    technologies: List[str] = []
    image: str = ""
    github_link: str = ""
    live_link: str = ""
    category: Literal["web", "mobile", "fullstack", "other"] = "web"
    featured: bool = False


# -----------------------------
# Request/Response Models
# -----------------------------

class ContactRequest(BaseModel):
    # Presence is checked by the intake service so missing fields get its message
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


class StatusUpdate(BaseModel):
    status: Optional[str] = None


class StoredProject(Project):
    source: Literal["database"] = "database"
    id: str
    created_at: Optional[datetime] = None


class GithubProject(BaseModel):
    source: Literal["github"] = "github"
    id: int
    title: str
    description: str
    technologies: List[str] = []
    image: str
    github_link: str
    live_link: Optional[str] = None
    stars: int = 0
    forks: int = 0
    language: Optional[str] = None
    updated_at: datetime
    created_at: Optional[datetime] = None
    topics: List[str] = []


ProjectOut = Annotated[Union[GithubProject, StoredProject], Field(discriminator="source")]
