"""
Friendship validation service.

Symmetric friend checks used as a gate before anything that requires
confirmed friends (shared-visit invitations).
"""

from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from django.db.models import Q

from apps.accounts.models import User
from apps.friends.models import Friendship, FriendshipStatus


@dataclass(frozen=True)
class FriendshipCheck:
    """Outcome of checking a set of candidates against a user's friends."""

    confirmed: frozenset
    missing: frozenset

    @property
    def all_confirmed(self) -> bool:
        return not self.missing


def _as_uuid(value) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def confirm_friends(*, user: User, candidate_ids: Iterable, lock: bool = False) -> FriendshipCheck:
    """
    Split candidates into confirmed friends of ``user`` and the rest.

    Both orderings of every pair are checked in a single query. The
    user's own id is never considered a friend.

    Args:
        user: User whose friends are checked
        candidate_ids: User ids (UUID or str)
        lock: Lock the matching friendship rows until the surrounding
            transaction ends (must be called inside ``transaction.atomic``)

    Returns:
        FriendshipCheck with ``confirmed`` and ``missing`` id sets
    """
    candidates = {_as_uuid(candidate) for candidate in candidate_ids}
    if not candidates:
        return FriendshipCheck(confirmed=frozenset(), missing=frozenset())

    friendships = (
        Friendship.objects
        .filter(status=FriendshipStatus.ACCEPTED)
        .filter(
            Q(requester=user, addressee_id__in=candidates) |
            Q(addressee=user, requester_id__in=candidates)
        )
    )
    if lock:
        friendships = friendships.select_for_update()
    rows = friendships.values_list('requester_id', 'addressee_id')

    confirmed = set()
    for requester_id, addressee_id in rows:
        confirmed.add(addressee_id if requester_id == user.id else requester_id)

    confirmed &= candidates
    confirmed.discard(user.id)
    return FriendshipCheck(
        confirmed=frozenset(confirmed),
        missing=frozenset(candidates - confirmed),
    )


def are_friends(*, user: User, other_user_id) -> bool:
    """Return True if the two users are confirmed friends, whichever one asked."""
    return confirm_friends(user=user, candidate_ids=[other_user_id]).all_confirmed
