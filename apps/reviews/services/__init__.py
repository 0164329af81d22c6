"""
Reviews services - Business logic layer.

A review always belongs to an accepted participant of a visit. It is
written either together with the visit (creator), together with the
acceptance of an invitation (participant) or afterwards through
``create_review``.
"""

from .review_management import (
    validate_rating,
    record_review,
    create_review,
    get_review_by_id,
    update_review,
    delete_review,
    get_visit_reviews,
    get_user_reviews,
)

# Domain Exceptions
from .exceptions import (
    ReviewsServiceError,
    ReviewNotFoundError,
    DuplicateReviewError,
    InvalidRatingError,
    NotParticipantError,
    NotReviewOwnerError,
)

__all__ = [
    # Review Management Services
    'validate_rating',
    'record_review',
    'create_review',
    'get_review_by_id',
    'update_review',
    'delete_review',
    'get_visit_reviews',
    'get_user_reviews',
    # Exceptions
    'ReviewsServiceError',
    'ReviewNotFoundError',
    'DuplicateReviewError',
    'InvalidRatingError',
    'NotParticipantError',
    'NotReviewOwnerError',
]
