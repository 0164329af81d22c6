from rest_framework import serializers
from .models import (
    Visit,
    VisitStatus,
    Participation,
    InvitationDecision,
)
from apps.accounts.serializers import UserMinimalSerializer
from apps.cafes.serializers import CafeMinimalSerializer


class VisitSerializer(serializers.ModelSerializer):
    """Main visit serializer."""

    creator = UserMinimalSerializer(read_only=True)
    cafe = CafeMinimalSerializer(read_only=True)
    images = serializers.SerializerMethodField()
    is_shared = serializers.BooleanField(read_only=True)

    class Meta:
        model = Visit
        fields = [
            'id',
            'creator',
            'cafe',
            'visited_at',
            'rating',
            'comment',
            'status',
            'max_participants',
            'images',
            'is_shared',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_images(self, obj):
        return [image.image_url for image in obj.images.all()]


class VisitCreateSerializer(serializers.Serializer):
    """
    Payload for logging a visit.

    Sent as multipart so photos can travel with it; ``participant_ids``
    and ``images`` may be repeated keys.
    """

    cafe_id = serializers.UUIDField()
    participant_ids = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        default=list,
    )
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False, allow_null=True)
    comment = serializers.CharField(required=False, allow_blank=True, default='')
    visited_at = serializers.DateTimeField(required=False)
    max_participants = serializers.IntegerField(required=False)
    images = serializers.ListField(
        child=serializers.FileField(),
        required=False,
        default=list,
    )


class VisitUpdateSerializer(serializers.Serializer):
    """
    Payload for changing a visit.

    PUT sends every field except ``images``; PATCH (``partial=True``) sends
    only what changes. ``images``, when given, replaces every photo.
    """

    cafe_id = serializers.UUIDField()
    visited_at = serializers.DateTimeField()
    rating = serializers.IntegerField(min_value=1, max_value=5, allow_null=True)
    comment = serializers.CharField(allow_blank=True)
    status = serializers.ChoiceField(choices=VisitStatus.choices)
    max_participants = serializers.IntegerField()
    images = serializers.ListField(child=serializers.FileField(), required=False)


class ParticipantReviewSerializer(serializers.Serializer):
    """The review a participant left, as shown next to them."""

    id = serializers.UUIDField()
    rating = serializers.IntegerField()
    comment = serializers.CharField()
    created_at = serializers.DateTimeField()


class ParticipantSerializer(serializers.ModelSerializer):
    """A seat on a visit with the occupant's review, if any."""

    user = UserMinimalSerializer(read_only=True)
    review = ParticipantReviewSerializer(read_only=True, allow_null=True)

    class Meta:
        model = Participation
        fields = ['id', 'user', 'role', 'status', 'invited_at', 'responded_at', 'review']
        read_only_fields = fields


class InvitationVisitSerializer(serializers.ModelSerializer):
    """Visit summary shown in an invitation."""

    creator = UserMinimalSerializer(read_only=True)
    cafe = CafeMinimalSerializer(read_only=True)

    class Meta:
        model = Visit
        fields = ['id', 'creator', 'cafe', 'visited_at', 'comment']
        read_only_fields = fields


class InvitationSerializer(serializers.ModelSerializer):
    """A pending invitation to someone else's visit."""

    visit = InvitationVisitSerializer(read_only=True)

    class Meta:
        model = Participation
        fields = ['id', 'visit', 'status', 'invited_at']
        read_only_fields = fields


class ParticipationSerializer(serializers.ModelSerializer):
    """A participation after it was answered or created."""

    visit_id = serializers.UUIDField(read_only=True)
    user_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Participation
        fields = ['id', 'visit_id', 'user_id', 'role', 'status', 'invited_at', 'responded_at']
        read_only_fields = fields


class RespondInvitationSerializer(serializers.Serializer):
    """Accept or reject an invitation, optionally reviewing the visit."""

    decision = serializers.ChoiceField(choices=InvitationDecision.choices)
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False, allow_null=True)
    comment = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if (
            attrs['decision'] == InvitationDecision.ACCEPT
            and attrs.get('comment')
            and attrs.get('rating') is None
        ):
            raise serializers.ValidationError({'rating': 'A comment needs a rating.'})
        return attrs


class InviteFriendsSerializer(serializers.Serializer):
    """Friends to add to an existing visit."""

    participant_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
