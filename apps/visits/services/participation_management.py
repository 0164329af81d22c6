"""
Participation management service.

Invitation lifecycle for shared visits:

    pending --(invitee accepts)--> accepted
    pending --(invitee rejects)--> rejected

Both outcomes are terminal. A rejected invitee can only be invited again
after the creator removes their participation.
"""

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from django.db import transaction
from django.db.models import Case, IntegerField, QuerySet, Value, When
from django.utils import timezone

from apps.accounts.models import User
from apps.friends.services import confirm_friends
from apps.reviews.models import Review
from apps.reviews.services import record_review, validate_rating
from apps.visits.models import (
    Visit,
    Participation,
    ParticipationRole,
    ParticipationStatus,
    InvitationDecision,
)

from .exceptions import (
    VisitNotFoundError,
    NotInvitedError,
    NotParticipantError,
    AlreadyRespondedError,
    AlreadyInvitedError,
    CannotRemoveCreatorError,
    ParticipantLimitError,
    UnconfirmedFriendsError,
)
from .visit_management import (
    create_pending_participations,
    lock_owned_visit,
    normalize_user_ids,
    occupied_seats,
)

logger = logging.getLogger(__name__)


@transaction.atomic
def respond_to_invitation(
    *,
    visit_id: UUID,
    user: User,
    decision: str,
    rating: Optional[int] = None,
    comment: str = ''
) -> Participation:
    """
    Accept or reject an invitation to a shared visit.

    The transition is a conditional update on ``status = pending`` so two
    concurrent answers can't both win. Accepting with a rating also writes
    the user's review in the same transaction; a review payload sent with
    a rejection is ignored.

    Args:
        visit_id: UUID of the visit
        user: Invited user answering
        decision: 'accept' or 'reject'
        rating: Optional rating 1-5 for the review
        comment: Optional review text (needs a rating)

    Returns:
        Updated Participation instance

    Raises:
        NotInvitedError: If the user holds no participation on the visit
        AlreadyRespondedError: If the invitation was already answered
        InvalidRatingError: If accepting with a rating outside 1-5
        DuplicateReviewError: If a review for the pair already exists
        ValueError: If decision is not accept/reject
    """
    if decision not in InvitationDecision.values:
        raise ValueError(f"Invalid decision: {decision}")

    accepting = decision == InvitationDecision.ACCEPT
    if accepting and rating is not None:
        validate_rating(rating)

    new_status = ParticipationStatus.ACCEPTED if accepting else ParticipationStatus.REJECTED
    updated = (
        Participation.objects
        .filter(visit_id=visit_id, user=user, status=ParticipationStatus.PENDING)
        .update(status=new_status, responded_at=timezone.now())
    )
    if not updated:
        if Participation.objects.filter(visit_id=visit_id, user=user).exists():
            raise AlreadyRespondedError("You have already answered this invitation")
        raise NotInvitedError("You are not invited to this visit")

    participation = Participation.objects.select_related('visit').get(visit_id=visit_id, user=user)

    if accepting and rating is not None:
        record_review(visit=participation.visit, author=user, rating=rating, comment=comment)

    logger.info("Invitation to visit %s %s by %s", visit_id, new_status, user.id)
    return participation


def get_pending_invitations(*, user: User) -> QuerySet[Participation]:
    """Pending invitations of a user with visit, café and creator, newest first."""
    return (
        Participation.objects
        .filter(user=user, status=ParticipationStatus.PENDING)
        .select_related('visit', 'visit__cafe', 'visit__creator')
        .order_by('-invited_at')
    )


def get_visit_participants(*, visit_id: UUID, user: Optional[User] = None) -> List[Participation]:
    """
    Everyone on a visit, each with their review (or None) as ``.review``.

    The creator comes first, then participants in invitation order.

    Raises:
        VisitNotFoundError: If visit doesn't exist
        NotParticipantError: If user is given and holds no participation on the visit
    """
    if not Visit.objects.filter(id=visit_id).exists():
        raise VisitNotFoundError(f"Visit with ID {visit_id} not found")

    participations = list(
        Participation.objects
        .filter(visit_id=visit_id)
        .select_related('user')
        .annotate(creator_first=Case(
            When(role=ParticipationRole.CREATOR, then=Value(0)),
            default=Value(1),
            output_field=IntegerField(),
        ))
        .order_by('creator_first', 'invited_at', 'id')
    )

    if user is not None and not any(p.user_id == user.id for p in participations):
        raise NotParticipantError("You are not part of this visit")

    reviews = {
        review.author_id: review
        for review in Review.objects.filter(visit_id=visit_id)
    }
    for participation in participations:
        participation.review = reviews.get(participation.user_id)

    return participations


@transaction.atomic
def remove_participant(*, visit_id: UUID, removed_by: User, user_id: UUID) -> None:
    """
    Remove someone from a visit together with their review (creator only).

    Raises:
        VisitNotFoundError: If visit doesn't exist
        NotVisitOwnerError: If removed_by is not the creator
        CannotRemoveCreatorError: If the target is the creator
        NotInvitedError: If the target holds no participation on the visit
    """
    visit = lock_owned_visit(visit_id, removed_by)

    if str(user_id) == str(visit.creator_id):
        raise CannotRemoveCreatorError("The creator cannot be removed from their own visit")

    deleted, _ = Participation.objects.filter(visit=visit, user_id=user_id).delete()
    if not deleted:
        raise NotInvitedError("This user is not part of the visit")

    Review.objects.filter(visit=visit, author_id=user_id).delete()
    logger.info("User %s removed from visit %s by %s", user_id, visit.id, removed_by.id)


@transaction.atomic
def invite_friends(*, visit_id: UUID, user: User, friend_ids: Sequence) -> List[Participation]:
    """
    Invite more confirmed friends to an existing visit (creator only).

    Raises:
        VisitNotFoundError: If visit doesn't exist
        NotVisitOwnerError: If user is not the creator
        AlreadyInvitedError: If one of the friends already holds a participation
        ParticipantLimitError: If the invitations would exceed max_participants
        UnconfirmedFriendsError: If some of them are not confirmed friends
    """
    visit = lock_owned_visit(visit_id, user)
    friend_ids = normalize_user_ids(friend_ids)
    if not friend_ids:
        return []

    if Participation.objects.filter(visit=visit, user_id__in=friend_ids).exists():
        raise AlreadyInvitedError("One of these users is already part of the visit")

    seats_taken = occupied_seats(visit)
    if seats_taken + len(friend_ids) > visit.max_participants:
        raise ParticipantLimitError(
            f"This visit has {visit.max_participants - seats_taken} free places left"
        )

    check = confirm_friends(user=user, candidate_ids=friend_ids, lock=True)
    if not check.all_confirmed:
        raise UnconfirmedFriendsError(check.missing)

    participations = create_pending_participations(visit=visit, user_ids=friend_ids)
    logger.info("%d friends invited to visit %s by %s", len(participations), visit.id, user.id)
    return participations
