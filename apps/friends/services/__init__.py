"""
Friends app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and rely on database
constraints as the final word on uniqueness.
"""

from .exceptions import (
    FriendsServiceError,
    SelfRelationError,
    UserNotFoundError,
    DuplicateRelationError,
    FriendshipNotFoundError,
    NotAuthorizedError,
    AlreadyResolvedError,
)

from .friendship_management import (
    send_friend_request,
    respond_to_friend_request,
    cancel_friend_request,
    remove_friend,
    list_friends,
    get_received_requests,
    get_sent_requests,
)

from .friendship_validation import (
    FriendshipCheck,
    confirm_friends,
    are_friends,
)


__all__ = [
    # Exceptions
    'FriendsServiceError',
    'SelfRelationError',
    'UserNotFoundError',
    'DuplicateRelationError',
    'FriendshipNotFoundError',
    'NotAuthorizedError',
    'AlreadyResolvedError',

    # Friendship Management
    'send_friend_request',
    'respond_to_friend_request',
    'cancel_friend_request',
    'remove_friend',
    'list_friends',
    'get_received_requests',
    'get_sent_requests',

    # Friendship Validation
    'FriendshipCheck',
    'confirm_friends',
    'are_friends',
]
