"""Review management service - CRUD operations for visit reviews."""

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.reviews.models import Review
from apps.visits.models import Participation, ParticipationStatus, Visit
from .exceptions import (
    ReviewNotFoundError,
    DuplicateReviewError,
    InvalidRatingError,
    NotParticipantError,
    NotReviewOwnerError,
)

logger = logging.getLogger(__name__)


def validate_rating(rating: int) -> None:
    """Raise InvalidRatingError unless rating is an int in 1..5."""
    if isinstance(rating, bool) or not isinstance(rating, int) or not (1 <= rating <= 5):
        raise InvalidRatingError("Rating must be between 1 and 5")


def record_review(
    *,
    visit: Visit,
    author: User,
    rating: int,
    comment: str = ''
) -> Review:
    """
    Persist a review for (visit, author).

    This is the binding used when the creator logs a visit and when a
    participant accepts an invitation with a review. Callers must already
    hold the surrounding transaction and have established that the author
    is an accepted participant.

    Raises:
        InvalidRatingError: If rating not in 1-5 range
        DuplicateReviewError: If the (visit, author) unique constraint fires
    """
    validate_rating(rating)

    try:
        with transaction.atomic():
            review = Review.objects.create(
                visit=visit,
                author=author,
                rating=rating,
                comment=comment or '',
            )
    except IntegrityError:
        logger.warning("Duplicate review blocked by constraint for visit %s, user %s", visit.id, author.id)
        raise DuplicateReviewError("You have already reviewed this visit")

    return review


@transaction.atomic
def create_review(
    *,
    visit_id: UUID,
    author: User,
    rating: int,
    comment: str = ''
) -> Review:
    """
    Create a review for a visit the author has accepted.

    Covers the case of a participant who accepted without a review and
    wants to add one later.

    Args:
        visit_id: UUID of the visit
        author: User writing the review
        rating: Rating 1-5
        comment: Optional text

    Returns:
        Created Review instance

    Raises:
        InvalidRatingError: If rating not in 1-5 range
        NotParticipantError: If author is not an accepted participant
        DuplicateReviewError: If author already reviewed this visit
    """
    validate_rating(rating)

    # Lock the participation so a concurrent removal can't orphan the review
    participation = (
        Participation.objects
        .select_for_update()
        .select_related('visit')
        .filter(visit_id=visit_id, user=author, status=ParticipationStatus.ACCEPTED)
        .first()
    )
    if participation is None:
        raise NotParticipantError(
            "You can only review visits you have taken part in"
        )

    if Review.objects.filter(visit_id=visit_id, author=author).exists():
        raise DuplicateReviewError(
            "You have already reviewed this visit. Please update your existing review instead."
        )

    return record_review(
        visit=participation.visit,
        author=author,
        rating=rating,
        comment=comment,
    )


def _holds_participation(visit_id, user) -> bool:
    return Participation.objects.filter(visit_id=visit_id, user=user).exists()


def get_review_by_id(*, review_id: UUID, user: Optional[User] = None) -> Review:
    """
    Retrieve a review by ID.

    When user is given, the review is only visible if they hold a
    participation on the reviewed visit.

    Raises:
        ReviewNotFoundError: If review doesn't exist or is not visible to user
    """
    try:
        review = Review.objects.select_related('author', 'visit').get(id=review_id)
    except Review.DoesNotExist:
        raise ReviewNotFoundError("Review not found")

    if user is not None and not _holds_participation(review.visit_id, user):
        raise ReviewNotFoundError("Review not found")

    return review


@transaction.atomic
def update_review(
    *,
    review_id: UUID,
    user: User,
    rating: Optional[int] = None,
    comment: Optional[str] = None
) -> Review:
    """
    Update an existing review.

    Only the review author can update their review. Visit and author
    cannot be changed.

    Raises:
        ReviewNotFoundError: If review doesn't exist
        NotReviewOwnerError: If user is not the author
        InvalidRatingError: If rating not in 1-5 range
    """
    # Get review with row lock
    try:
        review = (
            Review.objects
            .select_for_update()
            .get(id=review_id)
        )
    except Review.DoesNotExist:
        raise ReviewNotFoundError("Review not found")

    if review.author_id != user.id:
        raise NotReviewOwnerError("You can only update your own reviews")

    if rating is not None:
        validate_rating(rating)
        review.rating = rating
    if comment is not None:
        review.comment = comment

    review.save()
    return review


@transaction.atomic
def delete_review(*, review_id: UUID, user: User) -> None:
    """
    Delete a review.

    Only the review author can delete their review. The author's
    participation is left untouched.

    Raises:
        ReviewNotFoundError: If review doesn't exist
        NotReviewOwnerError: If user is not the author
    """
    try:
        review = (
            Review.objects
            .select_for_update()
            .get(id=review_id)
        )
    except Review.DoesNotExist:
        raise ReviewNotFoundError("Review not found")

    if review.author_id != user.id:
        raise NotReviewOwnerError("You can only delete your own reviews")

    review.delete()


def get_visit_reviews(*, visit_id: UUID, user: Optional[User] = None) -> QuerySet[Review]:
    """
    All reviews of a visit, newest first.

    Raises:
        NotParticipantError: If user is given and holds no participation on the visit
    """
    if user is not None and not _holds_participation(visit_id, user):
        raise NotParticipantError("You are not part of this visit")

    return (
        Review.objects
        .filter(visit_id=visit_id)
        .select_related('author')
        .order_by('-created_at')
    )


def get_user_reviews(*, user: User) -> QuerySet[Review]:
    """All reviews written by a user, with the visit's café, newest first."""
    return (
        Review.objects
        .filter(author=user)
        .select_related('visit', 'visit__cafe')
        .order_by('-created_at')
    )
