from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .models import Visit
from .serializers import (
    VisitSerializer,
    VisitCreateSerializer,
    VisitUpdateSerializer,
    ParticipantSerializer,
    InvitationSerializer,
    ParticipationSerializer,
    RespondInvitationSerializer,
    InviteFriendsSerializer,
)

from apps.visits.services import (
    create_visit,
    update_visit,
    delete_visit,
    get_visit_by_id,
    get_user_visits,
    respond_to_invitation,
    get_pending_invitations,
    get_visit_participants,
    remove_participant,
    invite_friends,
    store_visit_images,
    discard_visit_images,
    # Exceptions
    VisitNotFoundError,
    CafeNotFoundError,
    TooManyImagesError,
    InvalidImageError,
    ParticipantLimitError,
    UnconfirmedFriendsError,
    NotVisitOwnerError,
    NotInvitedError,
    AlreadyRespondedError,
    AlreadyInvitedError,
    CannotRemoveCreatorError,
    InvalidRatingError,
    NotParticipantError,
    DuplicateReviewError,
)

# Same shape Django's <uuid:> path converter accepts
UUID_PATTERN = '[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}'

# Payload problems the client can fix by changing the request
VALIDATION_ERRORS = (
    InvalidRatingError,
    TooManyImagesError,
    InvalidImageError,
    ParticipantLimitError,
)


def error_response(error, status_code):
    """Render a domain exception as ``{'error', 'code'}``."""
    data = {'error': str(error), 'code': error.code}
    if isinstance(error, UnconfirmedFriendsError):
        data['missing'] = sorted(str(user_id) for user_id in error.missing)
    return Response(data, status=status_code)


class VisitPagination(PageNumberPagination):
    """Custom pagination for the visit diary."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class VisitViewSet(viewsets.GenericViewSet):
    """
    Café visits and the invitations that come with sharing them.

    list: Current user's diary (created or accepted visits)
    create: Log a visit, optionally with photos and invited friends
    retrieve: Get a visit you take part in
    update: Replace every visit field except images (creator only)
    partial_update: Partially update a visit (creator only)
    destroy: Delete a visit with everything attached to it (creator only)
    shared: Diary entries that were shared with friends
    pending_invitations: Invitations waiting for your answer
    respond: Accept or reject an invitation
    participants: Everyone on a visit with their reviews
    invite: Invite more friends (creator only)
    remove_from_visit: Remove someone from a visit (creator only)
    """

    queryset = Visit.objects.none()
    serializer_class = VisitSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = VisitPagination
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    lookup_value_regex = UUID_PATTERN

    def _paginated(self, queryset, serializer_class):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(serializer_class(page, many=True).data)
        return Response(serializer_class(queryset, many=True).data)

    def list(self, request):
        """Current user's visit diary, most recent first."""
        return self._paginated(get_user_visits(user=request.user), VisitSerializer)

    @extend_schema(request=VisitCreateSerializer, responses={201: VisitSerializer})
    def create(self, request):
        """Log a visit, store its photos and invite friends."""
        serializer = VisitCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            stored = store_visit_images(data['images'])
            try:
                visit = create_visit(
                    creator=request.user,
                    cafe_id=data['cafe_id'],
                    participant_ids=data['participant_ids'],
                    rating=data.get('rating'),
                    comment=data.get('comment', ''),
                    visited_at=data.get('visited_at'),
                    image_urls=[image.url for image in stored],
                    max_participants=data.get('max_participants'),
                )
            except Exception:
                discard_visit_images(stored)
                raise
        except VALIDATION_ERRORS as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except UnconfirmedFriendsError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except CafeNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except (AlreadyInvitedError, DuplicateReviewError) as e:
            return error_response(e, status.HTTP_409_CONFLICT)

        visit = get_visit_by_id(visit_id=visit.id)
        return Response(VisitSerializer(visit).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        """Get a visit you created, accepted or were invited to."""
        try:
            visit = get_visit_by_id(visit_id=pk, user=request.user)
        except VisitNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        return Response(VisitSerializer(visit).data)

    @extend_schema(request=VisitUpdateSerializer, responses={200: VisitSerializer})
    def update(self, request, pk=None, partial=False):
        """Update a visit (creator only)."""
        serializer = VisitUpdateSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        images = changes.pop('images', None)

        stored = []
        try:
            if images is not None:
                stored = store_visit_images(images)
                changes['image_urls'] = [image.url for image in stored]
            try:
                visit = update_visit(visit_id=pk, user=request.user, **changes)
            except Exception:
                discard_visit_images(stored)
                raise
        except VisitNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotVisitOwnerError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        except VALIDATION_ERRORS as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except CafeNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        visit = get_visit_by_id(visit_id=visit.id)
        return Response(VisitSerializer(visit).data)

    @extend_schema(request=VisitUpdateSerializer, responses={200: VisitSerializer})
    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):
        """Delete a visit (creator only)."""
        try:
            delete_visit(visit_id=pk, user=request.user)
        except VisitNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotVisitOwnerError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def shared(self, request):
        """Diary entries with at least one invited friend."""
        visits = get_user_visits(user=request.user, shared_only=True)
        return self._paginated(visits, VisitSerializer)

    @extend_schema(responses={200: InvitationSerializer(many=True)})
    @action(detail=False, methods=['get'], url_path='invitations/pending', url_name='pending-invitations')
    def pending_invitations(self, request):
        """Invitations waiting for the current user's answer, newest first."""
        invitations = get_pending_invitations(user=request.user)
        return Response(InvitationSerializer(invitations, many=True).data)

    @extend_schema(request=RespondInvitationSerializer, responses={200: ParticipationSerializer})
    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        """Accept (optionally with a review) or reject an invitation."""
        serializer = RespondInvitationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participation = respond_to_invitation(
                visit_id=pk,
                user=request.user,
                decision=serializer.validated_data['decision'],
                rating=serializer.validated_data.get('rating'),
                comment=serializer.validated_data.get('comment', ''),
            )
        except NotInvitedError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except AlreadyRespondedError as e:
            return error_response(e, status.HTTP_409_CONFLICT)
        except InvalidRatingError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except DuplicateReviewError as e:
            return error_response(e, status.HTTP_409_CONFLICT)

        return Response(ParticipationSerializer(participation).data)

    @extend_schema(responses={200: ParticipantSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def participants(self, request, pk=None):
        """Creator first, then invitees in invitation order, each with their review."""
        try:
            participations = get_visit_participants(visit_id=pk, user=request.user)
        except VisitNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotParticipantError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        return Response(ParticipantSerializer(participations, many=True).data)

    @extend_schema(request=InviteFriendsSerializer, responses={201: ParticipationSerializer(many=True)})
    @action(detail=True, methods=['post'])
    def invite(self, request, pk=None):
        """Invite more confirmed friends (creator only)."""
        serializer = InviteFriendsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participations = invite_friends(
                visit_id=pk,
                user=request.user,
                friend_ids=serializer.validated_data['participant_ids'],
            )
        except VisitNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotVisitOwnerError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        except (ParticipantLimitError, UnconfirmedFriendsError) as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except AlreadyInvitedError as e:
            return error_response(e, status.HTTP_409_CONFLICT)

        return Response(
            ParticipationSerializer(participations, many=True).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=None, responses={204: None})
    @action(
        detail=True,
        methods=['delete'],
        url_path=rf'participants/(?P<user_id>{UUID_PATTERN})',
        url_name='remove-participant',
    )
    def remove_from_visit(self, request, pk=None, user_id=None):
        """Remove someone and their review from a visit (creator only)."""
        try:
            remove_participant(visit_id=pk, removed_by=request.user, user_id=user_id)
        except VisitNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotVisitOwnerError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        except CannotRemoveCreatorError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except NotInvitedError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)
