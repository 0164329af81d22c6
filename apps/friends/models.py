# ==========================================
# apps/friends/models.py
# ==========================================

from django.db import models
from django.db.models import F, Q
from django.db.models.functions import Greatest, Least
import uuid


class FriendshipStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACCEPTED = 'accepted', 'Accepted'
    REJECTED = 'rejected', 'Rejected'


class FriendshipDecision(models.TextChoices):
    ACCEPT = 'accept', 'Accept'
    REJECT = 'reject', 'Reject'


class Friendship(models.Model):
    """
    Friend request between two users.

    Stored as a directed row (requester -> addressee) but unique per
    unordered pair: the functional constraint on (LEAST, GREATEST) rejects
    a second row for the same two users in either direction.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    requester = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='sent_friend_requests')
    addressee = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='received_friend_requests')
    status = models.CharField(max_length=20, choices=FriendshipStatus.choices, default=FriendshipStatus.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'friendships'
        constraints = [
            models.UniqueConstraint(
                Least('requester', 'addressee'),
                Greatest('requester', 'addressee'),
                name='unique_friendship_pair',
            ),
            models.CheckConstraint(
                condition=~Q(requester=F('addressee')),
                name='friendship_no_self_relation',
            ),
        ]
        indexes = [
            models.Index(fields=['addressee', 'status'], name='friendships_addr_status_idx'),
            models.Index(fields=['requester', 'status'], name='friendships_req_status_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.requester} -> {self.addressee} ({self.status})"
