from clurb.domains.friends.entities import Friendship, FriendshipStatus
from clurb.domains.friends.schemas import (
    FriendRequestCreate, FriendRequestRespond, FriendshipResponse, FriendRequestsResponse
)

__all__ = [
    "Friendship", "FriendshipStatus",
    "FriendRequestCreate", "FriendRequestRespond", "FriendshipResponse", "FriendRequestsResponse"
]
