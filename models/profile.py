"""User profile model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.upload import UploadFile


@dataclass
class UserProfile:
    """Public profile keyed by the identity provider's user id."""
    uid: str = ""
    username: str = ""  # Stored lower-cased, unique
    email: str = ""
    display_name: str = ""
    profile_pic: Optional[str] = None
    bio: str = ""
    location: str = ""
    social_links: dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ProfileForm:
    display_name: str = ""
    bio: str = ""
    location: str = ""
    social_links: dict[str, str] = field(default_factory=dict)
    profile_pic: Optional[UploadFile] = None
