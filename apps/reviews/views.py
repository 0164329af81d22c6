from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from .models import Review
from .serializers import (
    ReviewSerializer,
    MyReviewSerializer,
    ReviewCreateSerializer,
    ReviewUpdateSerializer,
)
from apps.reviews.services import (
    create_review,
    get_review_by_id,
    update_review,
    delete_review,
    get_visit_reviews,
    get_user_reviews,
    # Exceptions
    ReviewNotFoundError,
    DuplicateReviewError,
    InvalidRatingError,
    NotParticipantError,
    NotReviewOwnerError,
)


# Same shape Django's <uuid:> path converter accepts
UUID_PATTERN = '[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}'


def error_response(error, status_code):
    """Render a domain exception as ``{'error', 'code'}``."""
    return Response({'error': str(error), 'code': error.code}, status=status_code)


class ReviewPagination(PageNumberPagination):
    """Custom pagination for reviews."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class ReviewViewSet(viewsets.GenericViewSet):
    """
    Reviews of shared visits.

    list: Reviews of one visit (``?visit=<id>``), participants only
    create: Review a visit you accepted without a review
    retrieve: Get a specific review
    update: Replace rating and comment of a review (author only)
    partial_update: Partially update a review (author only)
    destroy: Delete a review (author only)
    mine: Current user's reviews
    """

    queryset = Review.objects.none()
    serializer_class = ReviewSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = ReviewPagination
    lookup_value_regex = UUID_PATTERN

    def _paginated(self, queryset, serializer_class):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(serializer_class(page, many=True).data)
        return Response(serializer_class(queryset, many=True).data)

    @extend_schema(
        parameters=[
            OpenApiParameter('visit', OpenApiTypes.UUID, required=True, description='Visit to list reviews for'),
        ],
        responses={200: ReviewSerializer(many=True)},
    )
    def list(self, request):
        """List the reviews of a visit the current user takes part in."""
        visit_id = request.query_params.get('visit')
        if not visit_id:
            return Response(
                {'error': 'The visit query parameter is required', 'code': 'missing_visit'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            visit_id = serializers.UUIDField().to_internal_value(visit_id)
        except serializers.ValidationError:
            return Response(
                {'error': 'The visit query parameter must be a UUID', 'code': 'invalid_visit'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            reviews = get_visit_reviews(visit_id=visit_id, user=request.user)
        except NotParticipantError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)

        return self._paginated(reviews, ReviewSerializer)

    @extend_schema(request=ReviewCreateSerializer, responses={201: ReviewSerializer})
    def create(self, request):
        """Create a review for a visit the user has accepted."""
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            review = create_review(
                visit_id=serializer.validated_data['visit_id'],
                author=request.user,
                rating=serializer.validated_data['rating'],
                comment=serializer.validated_data.get('comment', ''),
            )
        except InvalidRatingError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except NotParticipantError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        except DuplicateReviewError as e:
            return error_response(e, status.HTTP_409_CONFLICT)

        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        """Get a review of a visit the user takes part in."""
        try:
            review = get_review_by_id(review_id=pk, user=request.user)
        except ReviewNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        return Response(ReviewSerializer(review).data)

    @extend_schema(request=ReviewUpdateSerializer, responses={200: ReviewSerializer})
    def update(self, request, pk=None, partial=False):
        """Update rating and/or comment of your own review."""
        serializer = ReviewUpdateSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        try:
            review = update_review(
                review_id=pk,
                user=request.user,
                rating=serializer.validated_data.get('rating'),
                comment=serializer.validated_data.get('comment'),
            )
        except ReviewNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotReviewOwnerError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        except InvalidRatingError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(ReviewSerializer(review).data)

    @extend_schema(request=ReviewUpdateSerializer, responses={200: ReviewSerializer})
    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):
        """Delete your own review."""
        try:
            delete_review(review_id=pk, user=request.user)
        except ReviewNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotReviewOwnerError as e:
            return error_response(e, status.HTTP_403_FORBIDDEN)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses={200: MyReviewSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def mine(self, request):
        """Get current user's reviews."""
        reviews = get_user_reviews(user=request.user)
        return self._paginated(reviews, MyReviewSerializer)
