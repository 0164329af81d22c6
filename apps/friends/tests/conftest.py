import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.friends.models import Friendship, FriendshipStatus


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
def alice(db):
    """Create and return the main test user."""
    return User.objects.create_user(
        email='alice@example.com',
        password='TestPass123!',
        display_name='Alice',
    )


@pytest.fixture
def bob(db):
    """Create and return a second user."""
    return User.objects.create_user(
        email='bob@example.com',
        password='TestPass123!',
        display_name='Bob',
    )


@pytest.fixture
def carol(db):
    """Create and return a third user."""
    return User.objects.create_user(
        email='carol@example.com',
        password='TestPass123!',
        display_name='Carol',
    )


@pytest.fixture
def alice_client(alice):
    """Return API client authenticated as alice."""
    return make_client(alice)


@pytest.fixture
def bob_client(bob):
    """Return API client authenticated as bob."""
    return make_client(bob)


@pytest.fixture
def carol_client(carol):
    """Return API client authenticated as carol."""
    return make_client(carol)


@pytest.fixture
def pending_request(alice, bob):
    """Pending friend request from alice to bob."""
    return Friendship.objects.create(
        requester=alice,
        addressee=bob,
        status=FriendshipStatus.PENDING,
    )


@pytest.fixture
def friendship(alice, bob):
    """Accepted friendship between alice and bob (alice asked)."""
    return Friendship.objects.create(
        requester=alice,
        addressee=bob,
        status=FriendshipStatus.ACCEPTED,
    )
