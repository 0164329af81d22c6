# ==========================================
# apps/visits/models.py
# ==========================================

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone
import uuid


class VisitStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class ParticipationRole(models.TextChoices):
    CREATOR = 'creator', 'Creator'
    PARTICIPANT = 'participant', 'Participant'


class ParticipationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACCEPTED = 'accepted', 'Accepted'
    REJECTED = 'rejected', 'Rejected'


class InvitationDecision(models.TextChoices):
    ACCEPT = 'accept', 'Accept'
    REJECT = 'reject', 'Reject'


def default_max_participants():
    return settings.VISITS_MAX_PARTICIPANTS


class Visit(models.Model):
    """A café visit logged by its creator, optionally shared with friends."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    creator = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='created_visits')
    cafe = models.ForeignKey('cafes.Cafe', on_delete=models.PROTECT, related_name='visits')
    visited_at = models.DateTimeField(default=timezone.now)
    rating = models.PositiveSmallIntegerField(
        null=True, blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    comment = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=VisitStatus.choices, default=VisitStatus.ACTIVE)
    max_participants = models.PositiveSmallIntegerField(
        default=default_max_participants,
        validators=[MinValueValidator(1), MaxValueValidator(10)],
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'visits'
        indexes = [
            models.Index(fields=['creator', 'visited_at'], name='visits_creator_visited_idx'),
            models.Index(fields=['cafe', 'visited_at'], name='visits_cafe_visited_idx'),
        ]
        ordering = ['-visited_at']

    def __str__(self):
        return f"{self.creator.get_display_name()} @ {self.cafe.name} ({self.visited_at:%Y-%m-%d})"

    @property
    def is_shared(self):
        return self.participations.filter(role=ParticipationRole.PARTICIPANT).exists()


class VisitImage(models.Model):
    """Photo attached to a visit; only the blob-store URL is kept."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name='images')
    image_url = models.URLField(max_length=500)
    position = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])

    class Meta:
        db_table = 'visit_images'
        unique_together = [['visit', 'position']]
        ordering = ['position']

    def __str__(self):
        return f"{self.visit_id} #{self.position}"


class Participation(models.Model):
    """
    A user's seat on a visit.

    The creator's row is created accepted; every invited friend starts
    pending and answers exactly once.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name='participations')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='visit_participations')
    role = models.CharField(max_length=20, choices=ParticipationRole.choices, default=ParticipationRole.PARTICIPANT)
    status = models.CharField(max_length=20, choices=ParticipationStatus.choices, default=ParticipationStatus.PENDING)
    invited_at = models.DateTimeField(default=timezone.now)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'participations'
        unique_together = [['visit', 'user']]
        indexes = [
            models.Index(fields=['user', 'status', 'invited_at'], name='participations_inbox_idx'),
            models.Index(fields=['visit', 'role'], name='participations_visit_role_idx'),
        ]
        ordering = ['invited_at']

    def __str__(self):
        return f"{self.user} on {self.visit_id} ({self.role}, {self.status})"
