"""
Visits services - Business logic layer.

Every rule about visits, invitations and their photos lives here; views
only translate HTTP to these calls and domain exceptions back to HTTP.
"""

from .visit_management import (
    create_visit,
    update_visit,
    delete_visit,
    get_visit_by_id,
    get_user_visits,
)

from .participation_management import (
    respond_to_invitation,
    get_pending_invitations,
    get_visit_participants,
    remove_participant,
    invite_friends,
)

from .image_storage import (
    StoredImage,
    validate_visit_images,
    store_visit_images,
    discard_visit_images,
)

# Domain Exceptions
from .exceptions import (
    VisitsServiceError,
    VisitNotFoundError,
    CafeNotFoundError,
    TooManyImagesError,
    InvalidImageError,
    ParticipantLimitError,
    UnconfirmedFriendsError,
    NotVisitOwnerError,
    NotInvitedError,
    AlreadyRespondedError,
    AlreadyInvitedError,
    CannotRemoveCreatorError,
    InvalidRatingError,
    NotParticipantError,
    DuplicateReviewError,
)

__all__ = [
    # Visit Management Services
    'create_visit',
    'update_visit',
    'delete_visit',
    'get_visit_by_id',
    'get_user_visits',
    # Participation Management Services
    'respond_to_invitation',
    'get_pending_invitations',
    'get_visit_participants',
    'remove_participant',
    'invite_friends',
    # Image Storage
    'StoredImage',
    'validate_visit_images',
    'store_visit_images',
    'discard_visit_images',
    # Exceptions
    'VisitsServiceError',
    'VisitNotFoundError',
    'CafeNotFoundError',
    'TooManyImagesError',
    'InvalidImageError',
    'ParticipantLimitError',
    'UnconfirmedFriendsError',
    'NotVisitOwnerError',
    'NotInvitedError',
    'AlreadyRespondedError',
    'AlreadyInvitedError',
    'CannotRemoveCreatorError',
    'InvalidRatingError',
    'NotParticipantError',
    'DuplicateReviewError',
]
