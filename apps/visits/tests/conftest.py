import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.cafes.models import Cafe
from apps.friends.models import Friendship, FriendshipStatus
from apps.visits.services import create_visit


def make_client(user):
    """Return a fresh API client authenticated as user."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


def befriend(user, other):
    """Create an accepted friendship between two users."""
    return Friendship.objects.create(requester=user, addressee=other, status=FriendshipStatus.ACCEPTED)


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def creator(db):
    """Create and return the user logging visits."""
    return User.objects.create_user(
        email='creator@example.com',
        password='TestPass123!',
        display_name='Visit Creator',
    )


@pytest.fixture
def friend(db, creator):
    """A confirmed friend of the creator."""
    user = User.objects.create_user(
        email='friend@example.com',
        password='TestPass123!',
        display_name='First Friend',
    )
    befriend(creator, user)
    return user


@pytest.fixture
def second_friend(db, creator):
    """Another confirmed friend of the creator (who sent the request)."""
    user = User.objects.create_user(
        email='friend2@example.com',
        password='TestPass123!',
        display_name='Second Friend',
    )
    befriend(user, creator)
    return user


@pytest.fixture
def stranger(db):
    """A user who is not friends with anyone."""
    return User.objects.create_user(
        email='stranger@example.com',
        password='TestPass123!',
        display_name='Stranger',
    )


@pytest.fixture
def creator_client(creator):
    """Return API client authenticated as the creator."""
    return make_client(creator)


@pytest.fixture
def friend_client(friend):
    """Return API client authenticated as the friend."""
    return make_client(friend)


@pytest.fixture
def stranger_client(stranger):
    """Return API client authenticated as the stranger."""
    return make_client(stranger)


@pytest.fixture
def cafe(db):
    """Create and return a test café."""
    return Cafe.objects.create(
        name='Café Central',
        address='Herrengasse 14, Vienna',
    )


@pytest.fixture
def other_cafe(db):
    """Create and return another café."""
    return Cafe.objects.create(
        name='Kaffee Alt Wien',
        address='Bäckerstraße 9, Vienna',
    )


@pytest.fixture
def shared_visit(creator, friend, second_friend, cafe):
    """A visit rated by the creator with two pending invitees."""
    return create_visit(
        creator=creator,
        cafe_id=cafe.id,
        participant_ids=[friend.id, second_friend.id],
        rating=4,
        comment='Great melange',
    )
