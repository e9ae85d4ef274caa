"""User profiles keyed by the identity provider's user id."""

import logging
import re
from typing import Optional

from config.exceptions import NotFoundError, QuillError, UsernameTakenError, ValidationError
from config.settings import Settings
from models.database import Database
from models.profile import ProfileForm, UserProfile
from storage.asset_store import AssetStore, validate_image_file

logger = logging.getLogger(__name__)

_USERNAME_CHARS_RE = re.compile(r"[^a-z0-9_.-]+")


def normalize_username(username: str) -> str:
    return username.strip().lower()


class ProfileService:
    def __init__(self, db: Database, assets: AssetStore, settings: Settings):
        self.db = db
        self.assets = assets
        self.settings = settings

    def check_username_availability(self, username: str) -> bool:
        """True if no profile uses this username (compared case-insensitively)."""
        return self.db.get_profile_by_username(normalize_username(username)) is None

    def register_profile(self, uid: str, email: str, username: str) -> UserProfile:
        """Create the profile for a new sign-up.

        Raises:
            ValidationError: username is blank.
            UsernameTakenError: another profile already has the username.
        """
        if not username or not username.strip():
            raise ValidationError("Username is required")
        if not self.check_username_availability(username):
            raise UsernameTakenError(username)
        profile = UserProfile(
            uid=uid,
            username=normalize_username(username),
            email=email,
            display_name=username.strip(),
        )
        self.db.create_profile(profile)
        logger.info("Profile created for %s (%s)", uid, profile.username)
        return self.get_profile(uid)

    def ensure_profile(self, uid: str, email: str, display_name: Optional[str] = None) -> UserProfile:
        """Return the user's profile, creating one on first sign-in.

        The username is derived from the display name, or the local part of the
        email, with a numeric suffix when that name is taken.
        """
        existing = self.db.get_profile(uid)
        if existing is not None:
            return existing

        base = display_name or email.split("@", 1)[0] or "reader"
        slug = _USERNAME_CHARS_RE.sub("_", normalize_username(base)).strip("_") or "reader"
        candidate, suffix = slug, 1
        while not self.check_username_availability(candidate):
            suffix += 1
            candidate = f"{slug}{suffix}"

        profile = UserProfile(
            uid=uid,
            username=candidate,
            email=email,
            display_name=(display_name or "").strip() or candidate,
        )
        self.db.create_profile(profile)
        logger.info("Profile bootstrapped for %s (%s)", uid, candidate)
        return self.get_profile(uid)

    def get_profile(self, uid: str) -> UserProfile:
        profile = self.db.get_profile(uid)
        if profile is None:
            raise NotFoundError("profile", uid)
        return profile

    def get_profile_by_username(self, username: str) -> UserProfile:
        profile = self.db.get_profile_by_username(normalize_username(username))
        if profile is None:
            raise NotFoundError("profile", username)
        return profile

    def update_profile(self, uid: str, form: ProfileForm) -> UserProfile:
        """Save profile edits, swapping the picture if a new one is given.

        A failed picture upload aborts the whole update; removing the old
        picture afterwards is best-effort.
        """
        profile = self.get_profile(uid)
        if not form.display_name or not form.display_name.strip():
            raise ValidationError("Display name is required")

        profile.display_name = form.display_name.strip()
        profile.bio = form.bio or ""
        profile.location = form.location or ""
        profile.social_links = dict(form.social_links or {})

        old_pic = None
        if form.profile_pic is not None:
            validate_image_file(
                form.profile_pic, self.settings.max_image_bytes, self.settings.allowed_image_types
            )
            old_pic = profile.profile_pic
            profile.profile_pic = self.assets.upload_profile_picture(form.profile_pic, uid)

        try:
            self.db.update_profile(profile)
        except QuillError:
            if form.profile_pic is not None and profile.profile_pic:
                self.assets.discard(profile.profile_pic)
            raise
        if old_pic:
            self.assets.discard(old_pic)
        logger.info("Profile %s updated", uid)
        return self.get_profile(uid)
