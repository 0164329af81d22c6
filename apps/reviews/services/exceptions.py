"""Domain exceptions for reviews app."""


class ReviewsServiceError(Exception):
    """Base exception for all reviews service errors."""
    code = 'reviews_error'


class ReviewNotFoundError(ReviewsServiceError):
    """Review does not exist or is inaccessible."""
    code = 'review_not_found'


class DuplicateReviewError(ReviewsServiceError):
    """User already reviewed this visit."""
    code = 'duplicate_review'


class InvalidRatingError(ReviewsServiceError):
    """Rating must be between 1 and 5."""
    code = 'invalid_rating'


class NotParticipantError(ReviewsServiceError):
    """User is not an accepted participant of the visit."""
    code = 'not_participant'


class NotReviewOwnerError(ReviewsServiceError):
    """User cannot modify a review they did not write."""
    code = 'not_owner'
