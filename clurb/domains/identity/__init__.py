from clurb.domains.identity.entities import Profile
from clurb.domains.identity.schemas import (
    ProfileBase, ProfileUpsert, ProfileResponse, ProfileSummary
)

__all__ = [
    "Profile",
    "ProfileBase", "ProfileUpsert", "ProfileResponse", "ProfileSummary"
]
