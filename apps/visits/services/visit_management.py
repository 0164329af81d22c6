"""
Visit management service.

A visit is created together with its images, the creator's participation
(already accepted), the creator's review when a rating is given and one
pending participation per invited friend. All of it is written in a single
transaction, after every validation and the friendship gate have passed.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import Exists, OuterRef, Q, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.cafes.models import Cafe
from apps.friends.services import confirm_friends
from apps.reviews.models import Review
from apps.reviews.services import record_review, validate_rating
from apps.visits.models import (
    Visit,
    VisitImage,
    VisitStatus,
    Participation,
    ParticipationRole,
    ParticipationStatus,
)

from .exceptions import (
    VisitNotFoundError,
    CafeNotFoundError,
    TooManyImagesError,
    ParticipantLimitError,
    UnconfirmedFriendsError,
    NotVisitOwnerError,
    InvalidRatingError,
    AlreadyInvitedError,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    'cafe_id', 'visited_at', 'rating', 'comment', 'status', 'max_participants', 'image_urls',
)


def normalize_user_ids(ids) -> List[UUID]:
    """Normalize to UUIDs, dropping duplicates but keeping order."""
    seen = []
    for value in ids or []:
        value = value if isinstance(value, UUID) else UUID(str(value))
        if value not in seen:
            seen.append(value)
    return seen


def _validate_rating_and_comment(rating, comment) -> None:
    if rating is not None:
        validate_rating(rating)
    elif comment:
        raise InvalidRatingError("A comment needs a rating between 1 and 5")


def _validate_image_count(image_urls) -> None:
    if len(image_urls) > settings.VISITS_MAX_IMAGES:
        raise TooManyImagesError(
            f"A visit can have at most {settings.VISITS_MAX_IMAGES} images"
        )


def _validate_max_participants(max_participants: int) -> None:
    if not (1 <= max_participants <= settings.VISITS_MAX_PARTICIPANTS):
        raise ParticipantLimitError(
            f"max_participants must be between 1 and {settings.VISITS_MAX_PARTICIPANTS}"
        )


def _get_cafe(cafe_id) -> Cafe:
    try:
        return Cafe.objects.get(id=cafe_id)
    except (Cafe.DoesNotExist, ValueError):
        raise CafeNotFoundError(f"Café with ID {cafe_id} not found")


def occupied_seats(visit: Visit) -> int:
    """Participations that take a seat: the creator, pending and accepted invitees."""
    return visit.participations.exclude(status=ParticipationStatus.REJECTED).count()


def _replace_images(visit: Visit, image_urls: Sequence[str]) -> None:
    VisitImage.objects.filter(visit=visit).delete()
    VisitImage.objects.bulk_create([
        VisitImage(visit=visit, image_url=url, position=position)
        for position, url in enumerate(image_urls, start=1)
    ])


def create_pending_participations(*, visit: Visit, user_ids: Sequence[UUID]) -> List[Participation]:
    """
    Insert one pending participation per invitee.

    Must run inside the caller's transaction. A (visit, user) unique
    violation means someone already holds a seat on the visit.

    Raises:
        AlreadyInvitedError: If one of the users already has a participation
    """
    now = timezone.now()
    try:
        with transaction.atomic():
            return Participation.objects.bulk_create([
                Participation(
                    visit=visit,
                    user_id=user_id,
                    role=ParticipationRole.PARTICIPANT,
                    status=ParticipationStatus.PENDING,
                    invited_at=now,
                )
                for user_id in user_ids
            ])
    except IntegrityError:
        logger.warning("Duplicate invitation blocked by constraint on visit %s", visit.id)
        raise AlreadyInvitedError("One of these users is already part of the visit")


def create_visit(
    *,
    creator: User,
    cafe_id: UUID,
    participant_ids: Optional[Sequence] = None,
    rating: Optional[int] = None,
    comment: str = '',
    visited_at: Optional[datetime] = None,
    image_urls: Optional[Sequence[str]] = None,
    max_participants: Optional[int] = None
) -> Visit:
    """
    Log a visit and invite friends to it.

    Args:
        creator: User logging the visit
        cafe_id: UUID of the café
        participant_ids: Users to invite; all must be confirmed friends of creator
        rating: Creator's rating 1-5, optional
        comment: Creator's comment; requires a rating
        visited_at: When the visit happened (defaults to now)
        image_urls: Up to VISITS_MAX_IMAGES already stored image URLs
        max_participants: Seat limit including the creator (defaults to VISITS_MAX_PARTICIPANTS)

    Returns:
        Created Visit instance

    Raises:
        InvalidRatingError: If rating not in 1-5 range, or a comment comes without rating
        TooManyImagesError: If too many images are given
        ParticipantLimitError: If max_participants is out of range or too many invitees
        CafeNotFoundError: If the café doesn't exist
        UnconfirmedFriendsError: If some invitees are not confirmed friends (nothing is written)
    """
    participant_ids = normalize_user_ids(participant_ids)
    image_urls = list(image_urls or [])
    if max_participants is None:
        max_participants = settings.VISITS_MAX_PARTICIPANTS

    _validate_rating_and_comment(rating, comment)
    _validate_image_count(image_urls)
    _validate_max_participants(max_participants)
    if len(participant_ids) > max_participants - 1:
        raise ParticipantLimitError(
            f"This visit allows at most {max_participants - 1} invited friends"
        )
    cafe = _get_cafe(cafe_id)

    now = timezone.now()
    with transaction.atomic():
        # Friendships stay locked until the invitations are written
        check = confirm_friends(user=creator, candidate_ids=participant_ids, lock=True)
        if not check.all_confirmed:
            raise UnconfirmedFriendsError(check.missing)

        visit = Visit.objects.create(
            creator=creator,
            cafe=cafe,
            visited_at=visited_at or now,
            rating=rating,
            comment=comment or '',
            status=VisitStatus.ACTIVE,
            max_participants=max_participants,
        )
        _replace_images(visit, image_urls)

        Participation.objects.create(
            visit=visit,
            user=creator,
            role=ParticipationRole.CREATOR,
            status=ParticipationStatus.ACCEPTED,
            invited_at=now,
            responded_at=now,
        )

        if rating is not None:
            record_review(visit=visit, author=creator, rating=rating, comment=comment)

        if participant_ids:
            create_pending_participations(visit=visit, user_ids=participant_ids)

    logger.info(
        "Visit %s created by %s at cafe %s with %d invitees",
        visit.id, creator.id, cafe.id, len(participant_ids),
    )
    return visit


def lock_owned_visit(visit_id, user: User) -> Visit:
    """Lock the visit row and check the caller created it."""
    try:
        visit = Visit.objects.select_for_update().get(id=visit_id)
    except Visit.DoesNotExist:
        raise VisitNotFoundError(f"Visit with ID {visit_id} not found")

    if visit.creator_id != user.id:
        raise NotVisitOwnerError("Only the creator can manage this visit")
    return visit


@transaction.atomic
def update_visit(*, visit_id: UUID, user: User, **changes) -> Visit:
    """
    Update a visit (creator only).

    Accepted keyword changes: cafe_id, visited_at, rating, comment, status,
    max_participants, image_urls (replaces every image). A new rating or
    comment is mirrored onto the creator's own review.

    Raises:
        VisitNotFoundError: If visit doesn't exist
        NotVisitOwnerError: If user is not the creator
        InvalidRatingError: If rating not in 1-5 range
        TooManyImagesError: If too many images are given
        ParticipantLimitError: If max_participants is out of range or below the seats taken
        CafeNotFoundError: If the new café doesn't exist
    """
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise TypeError(f"Unexpected visit fields: {', '.join(sorted(unknown))}")

    visit = lock_owned_visit(visit_id, user)

    if 'rating' in changes or 'comment' in changes:
        _validate_rating_and_comment(
            changes.get('rating', visit.rating),
            changes.get('comment', visit.comment),
        )
    if 'image_urls' in changes:
        _validate_image_count(changes['image_urls'])
    if 'max_participants' in changes:
        _validate_max_participants(changes['max_participants'])
        if changes['max_participants'] < occupied_seats(visit):
            raise ParticipantLimitError(
                "max_participants cannot be lower than the number of people already on the visit"
            )
    if 'status' in changes and changes['status'] not in VisitStatus.values:
        raise ValueError(f"Invalid status: {changes['status']}")
    if 'cafe_id' in changes:
        visit.cafe = _get_cafe(changes['cafe_id'])

    for field in ('visited_at', 'rating', 'comment', 'status', 'max_participants'):
        if field in changes:
            setattr(visit, field, changes[field])
    visit.comment = visit.comment or ''
    visit.save()

    if 'image_urls' in changes:
        _replace_images(visit, changes['image_urls'])

    if ('rating' in changes or 'comment' in changes) and visit.rating is not None:
        review = Review.objects.filter(visit=visit, author=user).first()
        if review is None:
            record_review(visit=visit, author=user, rating=visit.rating, comment=visit.comment)
        else:
            review.rating = visit.rating
            review.comment = visit.comment
            review.save(update_fields=['rating', 'comment', 'updated_at'])

    logger.info("Visit %s updated by %s (%s)", visit.id, user.id, ', '.join(sorted(changes)))
    return visit


@transaction.atomic
def delete_visit(*, visit_id: UUID, user: User) -> None:
    """
    Delete a visit with its reviews, participations and images (creator only).

    Raises:
        VisitNotFoundError: If visit doesn't exist
        NotVisitOwnerError: If user is not the creator
    """
    visit = lock_owned_visit(visit_id, user)

    Review.objects.filter(visit=visit).delete()
    Participation.objects.filter(visit=visit).delete()
    VisitImage.objects.filter(visit=visit).delete()
    visit.delete()

    logger.info("Visit %s deleted by %s", visit_id, user.id)


def get_visit_by_id(*, visit_id: UUID, user: Optional[User] = None) -> Visit:
    """
    Retrieve a visit with café, creator and images.

    When user is given, the visit is only visible if they hold a
    participation on it (creator, invited or accepted).

    Raises:
        VisitNotFoundError: If visit doesn't exist or is not visible to user
    """
    queryset = (
        Visit.objects
        .select_related('cafe', 'creator')
        .prefetch_related('images')
    )
    if user is not None:
        queryset = queryset.filter(participations__user=user)

    try:
        return queryset.get(id=visit_id)
    except Visit.DoesNotExist:
        raise VisitNotFoundError(f"Visit with ID {visit_id} not found")


def get_user_visits(*, user: User, shared_only: bool = False) -> QuerySet[Visit]:
    """
    The user's diary: visits they created or accepted, most recent first.

    Args:
        user: Diary owner
        shared_only: Only visits with at least one invited participant
    """
    accepted = Participation.objects.filter(
        visit=OuterRef('pk'),
        user=user,
        status=ParticipationStatus.ACCEPTED,
    )
    queryset = (
        Visit.objects
        .filter(Q(creator=user) | Exists(accepted))
        .select_related('cafe', 'creator')
        .prefetch_related('images')
    )
    if shared_only:
        queryset = queryset.filter(Exists(
            Participation.objects.filter(visit=OuterRef('pk'), role=ParticipationRole.PARTICIPANT)
        ))
    return queryset.order_by('-visited_at', '-created_at')
