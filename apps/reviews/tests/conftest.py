import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.cafes.models import Cafe
from apps.friends.models import Friendship, FriendshipStatus
from apps.visits.services import create_visit, respond_to_invitation


def make_client(user):
    """Return a fresh API client authenticated as user."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def review_creator(db):
    """Create and return the user who logged the visit."""
    return User.objects.create_user(
        email='reviewer@example.com',
        password='TestPass123!',
        display_name='Coffee Reviewer',
    )


@pytest.fixture
def review_friend(db, review_creator):
    """A confirmed friend of the creator."""
    user = User.objects.create_user(
        email='review_friend@example.com',
        password='TestPass123!',
        display_name='Review Friend',
    )
    Friendship.objects.create(requester=review_creator, addressee=user, status=FriendshipStatus.ACCEPTED)
    return user


@pytest.fixture
def review_other_user(db):
    """A user with no part in any visit."""
    return User.objects.create_user(
        email='review_other@example.com',
        password='TestPass123!',
        display_name='Review Other User',
    )


@pytest.fixture
def creator_client(review_creator):
    return make_client(review_creator)


@pytest.fixture
def friend_client(review_friend):
    return make_client(review_friend)


@pytest.fixture
def other_client(review_other_user):
    return make_client(review_other_user)


@pytest.fixture
def review_cafe(db):
    """Create and return a test café for reviews."""
    return Cafe.objects.create(
        name='Café Sperl',
        address='Gumpendorfer Str. 11, Vienna',
    )


@pytest.fixture
def visit(review_creator, review_friend, review_cafe):
    """Visit rated by the creator; the friend is still invited."""
    return create_visit(
        creator=review_creator,
        cafe_id=review_cafe.id,
        participant_ids=[review_friend.id],
        rating=4,
        comment='Classic interior',
    )


@pytest.fixture
def accepted_visit(visit, review_friend):
    """Same visit after the friend accepted without reviewing."""
    respond_to_invitation(visit_id=visit.id, user=review_friend, decision='accept')
    return visit


@pytest.fixture
def creator_review(visit, review_creator):
    """The review written together with the visit."""
    return visit.reviews.get(author=review_creator)
