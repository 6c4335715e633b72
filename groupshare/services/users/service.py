from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from groupshare.models.user_profile import UserProfile


class UserProfileService:
    EDITABLE_FIELDS = ("display_name", "email", "phone_number", "bio", "avatar_url")

    def __init__(self, db: Session):
        self.db = db

    def get_by_external_id(self, external_auth_id: str) -> UserProfile | None:
        return (
            self.db.query(UserProfile)
            .filter(UserProfile.external_auth_id == external_auth_id)
            .one_or_none()
        )

    def get(self, profile_id: str) -> UserProfile | None:
        return self.db.query(UserProfile).filter(UserProfile.id == profile_id).one_or_none()

    def get_or_create(
        self,
        external_auth_id: str,
        display_name: str | None = None,
        email: str | None = None,
    ) -> UserProfile:
        profile = self.get_by_external_id(external_auth_id)
        if profile:
            return profile
        profile = UserProfile(
            external_auth_id=external_auth_id,
            display_name=display_name or "New user",
            email=email,
        )
        self.db.add(profile)
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent first request for the same identity created it already.
            self.db.rollback()
            return self.get_by_external_id(external_auth_id)
        self.db.refresh(profile)
        return profile

    def update_profile(self, profile: UserProfile, **fields) -> UserProfile:
        """Updates editable fields; the identity-provider subject never changes."""
        for name in self.EDITABLE_FIELDS:
            value = fields.get(name)
            if value is not None:
                setattr(profile, name, value)
        if not profile.display_name:
            profile.display_name = "New user"
        self.db.commit()
        self.db.refresh(profile)
        return profile
