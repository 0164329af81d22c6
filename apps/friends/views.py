from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .models import Friendship
from .serializers import (
    FriendshipSerializer,
    SendFriendRequestSerializer,
    RespondFriendRequestSerializer,
)
from apps.accounts.serializers import UserMinimalSerializer

from apps.friends.services import (
    send_friend_request,
    respond_to_friend_request,
    cancel_friend_request,
    remove_friend,
    list_friends,
    get_received_requests,
    get_sent_requests,
    # Exceptions
    SelfRelationError,
    UserNotFoundError,
    DuplicateRelationError,
    FriendshipNotFoundError,
    NotAuthorizedError,
    AlreadyResolvedError,
)


# Same shape Django's <uuid:> path converter accepts
UUID_PATTERN = '[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}'


def error_response(error, status_code):
    """Render a domain exception as ``{'error', 'code'}``."""
    return Response({'error': str(error), 'code': error.code}, status=status_code)


class FriendRequestViewSet(viewsets.GenericViewSet):
    """
    Friend request lifecycle.

    Views are thin HTTP handlers; all rules live in services.

    create: Send a friend request
    destroy: Cancel a pending request you sent
    respond: Accept or reject a request addressed to you
    received: Pending requests addressed to you
    sent: Pending requests you sent
    """

    queryset = Friendship.objects.none()
    serializer_class = FriendshipSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_PATTERN

    @extend_schema(request=SendFriendRequestSerializer, responses={201: FriendshipSerializer})
    def create(self, request):
        """Send a friend request."""
        serializer = SendFriendRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            friendship = send_friend_request(
                requester=request.user,
                addressee_id=serializer.validated_data['addressee_id'],
            )
        except SelfRelationError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except UserNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except DuplicateRelationError as e:
            return error_response(e, status.HTTP_409_CONFLICT)

        return Response(FriendshipSerializer(friendship).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        """Cancel a pending friend request."""
        try:
            cancel_friend_request(friendship_id=pk, user=request.user)
        except FriendshipNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=RespondFriendRequestSerializer, responses={200: FriendshipSerializer})
    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        """Accept or reject a friend request (addressee only)."""
        serializer = RespondFriendRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            friendship = respond_to_friend_request(
                friendship_id=pk,
                user=request.user,
                decision=serializer.validated_data['decision'],
            )
        except FriendshipNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotAuthorizedError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        except AlreadyResolvedError as e:
            return error_response(e, status.HTTP_409_CONFLICT)

        return Response(FriendshipSerializer(friendship).data)

    @action(detail=False, methods=['get'])
    def received(self, request):
        """Pending friend requests addressed to the current user."""
        requests = get_received_requests(user=request.user)
        return Response(FriendshipSerializer(requests, many=True).data)

    @action(detail=False, methods=['get'])
    def sent(self, request):
        """Pending friend requests sent by the current user."""
        requests = get_sent_requests(user=request.user)
        return Response(FriendshipSerializer(requests, many=True).data)


@extend_schema(
    responses={200: UserMinimalSerializer(many=True)},
    description="Get all confirmed friends of the current user.",
    tags=['friends'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_friends(request):
    """List confirmed friends."""
    friends = list_friends(user=request.user)
    return Response(UserMinimalSerializer(friends, many=True).data)


@extend_schema(
    responses={204: None},
    description="Remove the relation with another user, whatever its status.",
    tags=['friends'],
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def unfriend(request, user_id):
    """Remove a friend. Removing a non-friend is a no-op."""
    remove_friend(user=request.user, other_user_id=user_id)
    return Response(status=status.HTTP_204_NO_CONTENT)
