from rest_framework import serializers
from .models import Friendship, FriendshipDecision
from apps.accounts.serializers import UserMinimalSerializer


class FriendshipSerializer(serializers.ModelSerializer):
    """Friend request with both parties."""

    requester = UserMinimalSerializer(read_only=True)
    addressee = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Friendship
        fields = ['id', 'requester', 'addressee', 'status', 'created_at', 'responded_at']
        read_only_fields = fields


class SendFriendRequestSerializer(serializers.Serializer):
    """Serializer for sending a friend request."""

    addressee_id = serializers.UUIDField(required=True)


class RespondFriendRequestSerializer(serializers.Serializer):
    """Serializer for accepting or rejecting a friend request."""

    decision = serializers.ChoiceField(choices=FriendshipDecision.choices, required=True)
