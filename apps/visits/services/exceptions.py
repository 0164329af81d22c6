"""
Domain-specific exceptions for visits app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses. Each
carries a stable ``code`` that clients can switch on.

Rating and participant-only errors are shared with the reviews app so a
review written as part of a visit fails the same way as a standalone one.
"""

from apps.reviews.services.exceptions import (  # noqa: F401
    InvalidRatingError,
    NotParticipantError,
    DuplicateReviewError,
)


class VisitsServiceError(Exception):
    """Base exception for all visits service errors."""
    code = 'visits_error'


class VisitNotFoundError(VisitsServiceError):
    """Raised when a visit does not exist."""
    code = 'visit_not_found'


class CafeNotFoundError(VisitsServiceError):
    """Raised when the referenced café does not exist."""
    code = 'cafe_not_found'


class TooManyImagesError(VisitsServiceError):
    """Raised when a visit would carry more images than allowed."""
    code = 'too_many_images'


class InvalidImageError(VisitsServiceError):
    """Raised when an upload is not an image or exceeds the size limit."""
    code = 'invalid_image'


class ParticipantLimitError(VisitsServiceError):
    """Raised when max_participants is out of range or would be exceeded."""
    code = 'participant_limit'


class UnconfirmedFriendsError(VisitsServiceError):
    """Raised when some invitees are not confirmed friends of the creator."""
    code = 'unconfirmed_friends'

    def __init__(self, missing):
        self.missing = frozenset(missing)
        super().__init__(
            f"{len(self.missing)} of the invited users are not your confirmed friends"
        )


class NotVisitOwnerError(VisitsServiceError):
    """Raised when someone other than the creator tries to manage a visit."""
    code = 'not_owner'


class NotInvitedError(VisitsServiceError):
    """Raised when the user holds no participation on the visit."""
    code = 'not_invited'


class AlreadyRespondedError(VisitsServiceError):
    """Raised when an invitation was already accepted or rejected."""
    code = 'already_responded'


class AlreadyInvitedError(VisitsServiceError):
    """Raised when an invitee already holds a participation on the visit."""
    code = 'already_invited'


class CannotRemoveCreatorError(VisitsServiceError):
    """Raised when the creator's own participation is targeted for removal."""
    code = 'cannot_remove_creator'
