"""
Domain-specific exceptions for friends app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses. Each
carries a stable ``code`` that clients can switch on.
"""


class FriendsServiceError(Exception):
    """Base exception for all friends service errors."""
    code = 'friends_error'


class SelfRelationError(FriendsServiceError):
    """Raised when a user sends a friend request to themselves."""
    code = 'self_relation'


class UserNotFoundError(FriendsServiceError):
    """Raised when the other user does not exist."""
    code = 'user_not_found'


class DuplicateRelationError(FriendsServiceError):
    """Raised when a friendship record already exists for the pair, in either direction."""
    code = 'duplicate_relation'


class FriendshipNotFoundError(FriendsServiceError):
    """Raised when a friend request does not exist or is not visible to the caller."""
    code = 'friendship_not_found'


class NotAuthorizedError(FriendsServiceError):
    """Raised when someone other than the addressee tries to answer a request."""
    code = 'not_authorized'


class AlreadyResolvedError(FriendsServiceError):
    """Raised when a friend request was already accepted or rejected."""
    code = 'already_resolved'
