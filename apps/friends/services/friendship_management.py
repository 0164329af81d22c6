"""
Friendship management service.

Handles the friend request lifecycle:

    pending --(addressee accepts)--> accepted
    pending --(addressee rejects)--> rejected

Both outcomes are terminal. Removing a relation deletes the row and is
the only way to clear a rejected request.
"""

import logging
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.friends.models import Friendship, FriendshipStatus, FriendshipDecision

from .exceptions import (
    SelfRelationError,
    UserNotFoundError,
    DuplicateRelationError,
    FriendshipNotFoundError,
    NotAuthorizedError,
    AlreadyResolvedError,
)

logger = logging.getLogger(__name__)


def _pair_filter(user_id, other_user_id) -> Q:
    """Match the relation between two users regardless of who sent it."""
    return (
        Q(requester_id=user_id, addressee_id=other_user_id) |
        Q(requester_id=other_user_id, addressee_id=user_id)
    )


@transaction.atomic
def send_friend_request(*, requester: User, addressee_id: UUID) -> Friendship:
    """
    Send a friend request.

    Args:
        requester: User sending the request
        addressee_id: UUID of the user receiving it

    Returns:
        Created Friendship in pending state

    Raises:
        SelfRelationError: If requester and addressee are the same user
        UserNotFoundError: If the addressee doesn't exist
        DuplicateRelationError: If any record exists for the pair (caught from IntegrityError too)
    """
    if str(requester.id) == str(addressee_id):
        raise SelfRelationError("You cannot send a friend request to yourself")

    try:
        addressee = User.objects.get(id=addressee_id, is_active=True)
    except User.DoesNotExist:
        raise UserNotFoundError(f"User with ID {addressee_id} not found")

    if Friendship.objects.filter(_pair_filter(requester.id, addressee.id)).exists():
        raise DuplicateRelationError(
            "A friend request or friendship already exists between these users"
        )

    try:
        friendship = Friendship.objects.create(
            requester=requester,
            addressee=addressee,
            status=FriendshipStatus.PENDING,
        )
    except IntegrityError:
        # Concurrent request for the same pair won the unique constraint
        logger.warning(
            "Friend request race between %s and %s resolved by constraint",
            requester.id, addressee.id,
        )
        raise DuplicateRelationError(
            "A friend request or friendship already exists between these users"
        )

    logger.info("Friend request %s sent from %s to %s", friendship.id, requester.id, addressee.id)
    return friendship


@transaction.atomic
def respond_to_friend_request(
    *,
    friendship_id: UUID,
    user: User,
    decision: str
) -> Friendship:
    """
    Accept or reject a pending friend request.

    The transition is a conditional update on ``status = pending`` so two
    concurrent responses can't both win.

    Args:
        friendship_id: UUID of the friend request
        user: User answering (must be the addressee)
        decision: 'accept' or 'reject'

    Returns:
        Updated Friendship instance

    Raises:
        FriendshipNotFoundError: If the request doesn't exist
        NotAuthorizedError: If user is not the addressee
        AlreadyResolvedError: If the request is no longer pending
        ValueError: If decision is not accept/reject
    """
    if decision not in FriendshipDecision.values:
        raise ValueError(f"Invalid decision: {decision}")

    try:
        friendship = Friendship.objects.get(id=friendship_id)
    except Friendship.DoesNotExist:
        raise FriendshipNotFoundError(f"Friend request with ID {friendship_id} not found")

    if friendship.addressee_id != user.id:
        raise NotAuthorizedError("Only the addressee can respond to this friend request")

    new_status = (
        FriendshipStatus.ACCEPTED
        if decision == FriendshipDecision.ACCEPT
        else FriendshipStatus.REJECTED
    )
    updated = (
        Friendship.objects
        .filter(id=friendship.id, status=FriendshipStatus.PENDING)
        .update(status=new_status, responded_at=timezone.now())
    )
    if not updated:
        raise AlreadyResolvedError("This friend request has already been answered")

    friendship.refresh_from_db()
    logger.info("Friend request %s %s by %s", friendship.id, new_status, user.id)
    return friendship


@transaction.atomic
def cancel_friend_request(*, friendship_id: UUID, user: User) -> None:
    """
    Withdraw a pending friend request the user sent.

    Raises:
        FriendshipNotFoundError: If there is no pending request with this id sent by user
    """
    deleted, _ = (
        Friendship.objects
        .filter(id=friendship_id, requester=user, status=FriendshipStatus.PENDING)
        .delete()
    )
    if not deleted:
        raise FriendshipNotFoundError(
            "Friend request not found or it can no longer be cancelled"
        )


@transaction.atomic
def remove_friend(*, user: User, other_user_id: UUID) -> int:
    """
    Delete whatever relation exists between two users.

    Works for any status and from either side. Removing a relation that
    does not exist is a no-op.

    Returns:
        Number of friendship rows deleted (0 or 1)
    """
    deleted, _ = Friendship.objects.filter(_pair_filter(user.id, other_user_id)).delete()
    if deleted:
        logger.info("Friendship between %s and %s removed", user.id, other_user_id)
    return deleted


def list_friends(*, user: User) -> QuerySet[User]:
    """
    Get all confirmed friends of a user, whoever sent the original request.

    Returns:
        QuerySet of User instances ordered by display name
    """
    pairs = Friendship.objects.filter(
        Q(requester=user) | Q(addressee=user),
        status=FriendshipStatus.ACCEPTED,
    ).values_list('requester_id', 'addressee_id')
    friend_ids = [
        addressee_id if requester_id == user.id else requester_id
        for requester_id, addressee_id in pairs
    ]
    return User.objects.filter(id__in=friend_ids).order_by('display_name', 'email')


def get_received_requests(*, user: User) -> QuerySet[Friendship]:
    """Pending requests addressed to the user, newest first."""
    return (
        Friendship.objects
        .filter(addressee=user, status=FriendshipStatus.PENDING)
        .select_related('requester')
        .order_by('-created_at')
    )


def get_sent_requests(*, user: User) -> QuerySet[Friendship]:
    """Pending requests the user sent, newest first."""
    return (
        Friendship.objects
        .filter(requester=user, status=FriendshipStatus.PENDING)
        .select_related('addressee')
        .order_by('-created_at')
    )
