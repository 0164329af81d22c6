"""
Service layer tests for visits app.

Tests all service functions for:
- Visit Management (create, update, delete, diary)
- Participation Management (respond, pending, participants, remove, invite)
- Image storage
- Concurrency protection (concurrent invitation responses)
"""

import threading
import uuid
from unittest.mock import patch

import pytest
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import connection
from django.test import TransactionTestCase, override_settings

from apps.accounts.models import User
from apps.cafes.models import Cafe
from apps.friends.models import Friendship, FriendshipStatus
from apps.friends.services import confirm_friends
from apps.reviews.models import Review
from apps.visits.models import (
    Visit,
    VisitImage,
    VisitStatus,
    Participation,
    ParticipationRole,
    ParticipationStatus,
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
)
from apps.visits.services.exceptions import (
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
)


def image_upload(name='photo.jpg', content_type='image/jpeg', size=128):
    return SimpleUploadedFile(name, b'\xff' * size, content_type=content_type)


# =============================================================================
# Visit Management Service Tests
# =============================================================================

@pytest.mark.django_db
class TestCreateVisit:
    """Tests for create_visit."""

    def test_create_shared_visit(self, creator, friend, cafe):
        """Creator is accepted right away, the invitee starts pending."""
        visit = create_visit(
            creator=creator,
            cafe_id=cafe.id,
            participant_ids=[friend.id],
            rating=5,
            comment='Best cake in town',
            image_urls=['/media/visits/a.jpg', '/media/visits/b.jpg'],
        )

        assert visit.creator == creator
        assert visit.cafe == cafe
        assert visit.status == VisitStatus.ACTIVE
        assert visit.max_participants == 10
        assert visit.is_shared

        own = Participation.objects.get(visit=visit, user=creator)
        assert own.role == ParticipationRole.CREATOR
        assert own.status == ParticipationStatus.ACCEPTED
        assert own.responded_at is not None

        invited = Participation.objects.get(visit=visit, user=friend)
        assert invited.role == ParticipationRole.PARTICIPANT
        assert invited.status == ParticipationStatus.PENDING
        assert invited.responded_at is None

        review = Review.objects.get(visit=visit)
        assert review.author == creator
        assert review.rating == 5
        assert review.comment == 'Best cake in town'

        assert list(visit.images.values_list('position', 'image_url')) == [
            (1, '/media/visits/a.jpg'),
            (2, '/media/visits/b.jpg'),
        ]

    def test_create_solo_visit_without_rating(self, creator, cafe):
        visit = create_visit(creator=creator, cafe_id=cafe.id)

        assert not visit.is_shared
        assert Participation.objects.filter(visit=visit).count() == 1
        assert Review.objects.filter(visit=visit).count() == 0

    def test_unconfirmed_friend_writes_nothing(self, creator, friend, stranger, cafe):
        with pytest.raises(UnconfirmedFriendsError) as exc_info:
            create_visit(
                creator=creator,
                cafe_id=cafe.id,
                participant_ids=[friend.id, stranger.id],
                rating=4,
            )

        assert exc_info.value.missing == {stranger.id}
        assert Visit.objects.count() == 0
        assert Participation.objects.count() == 0
        assert Review.objects.count() == 0

    def test_pending_friend_request_is_not_enough(self, creator, stranger, cafe):
        Friendship.objects.create(requester=creator, addressee=stranger, status=FriendshipStatus.PENDING)

        with pytest.raises(UnconfirmedFriendsError):
            create_visit(creator=creator, cafe_id=cafe.id, participant_ids=[stranger.id])

    def test_duplicate_invitees_collapse(self, creator, friend, cafe):
        visit = create_visit(
            creator=creator,
            cafe_id=cafe.id,
            participant_ids=[friend.id, str(friend.id)],
        )

        assert Participation.objects.filter(visit=visit, user=friend).count() == 1

    @pytest.mark.parametrize('rating', [0, 6])
    def test_invalid_rating(self, creator, cafe, rating):
        with pytest.raises(InvalidRatingError):
            create_visit(creator=creator, cafe_id=cafe.id, rating=rating)

        assert Visit.objects.count() == 0

    def test_comment_without_rating(self, creator, cafe):
        with pytest.raises(InvalidRatingError):
            create_visit(creator=creator, cafe_id=cafe.id, comment='No stars?')

    def test_too_many_images(self, creator, cafe):
        with pytest.raises(TooManyImagesError):
            create_visit(
                creator=creator,
                cafe_id=cafe.id,
                image_urls=[f'/media/visits/{i}.jpg' for i in range(6)],
            )

    @pytest.mark.parametrize('max_participants', [0, 11])
    def test_max_participants_out_of_range(self, creator, cafe, max_participants):
        with pytest.raises(ParticipantLimitError):
            create_visit(creator=creator, cafe_id=cafe.id, max_participants=max_participants)

    def test_more_invitees_than_seats(self, creator, friend, second_friend, cafe):
        with pytest.raises(ParticipantLimitError):
            create_visit(
                creator=creator,
                cafe_id=cafe.id,
                participant_ids=[friend.id, second_friend.id],
                max_participants=2,
            )

    def test_unknown_cafe(self, creator):
        with pytest.raises(CafeNotFoundError):
            create_visit(creator=creator, cafe_id=uuid.uuid4())

    @pytest.mark.django_db(transaction=True)
    @pytest.mark.parametrize('failing_step', ['create_pending_participations', 'record_review'])
    def test_failure_midway_writes_nothing(self, creator, friend, cafe, failing_step):
        """A step failing after the visit row exists rolls the whole visit back."""
        target = f'apps.visits.services.visit_management.{failing_step}'
        with patch(target, side_effect=RuntimeError('database went away')):
            with pytest.raises(RuntimeError):
                create_visit(
                    creator=creator,
                    cafe_id=cafe.id,
                    participant_ids=[friend.id],
                    rating=5,
                    comment='Never saved',
                    image_urls=['/media/visits/a.jpg'],
                )

        assert Visit.objects.count() == 0
        assert VisitImage.objects.count() == 0
        assert Participation.objects.count() == 0
        assert Review.objects.count() == 0

    @pytest.mark.django_db(transaction=True)
    def test_friendship_check_locks_inside_transaction(self, creator, friend, cafe):
        """Friendships are checked under lock in the same transaction that writes invitations."""
        calls = []

        def checked(**kwargs):
            calls.append((connection.in_atomic_block, kwargs.get('lock')))
            return confirm_friends(**kwargs)

        with patch('apps.visits.services.visit_management.confirm_friends', side_effect=checked):
            create_visit(creator=creator, cafe_id=cafe.id, participant_ids=[friend.id])

        assert calls == [(True, True)]


@pytest.mark.django_db
class TestUpdateVisit:
    """Tests for update_visit."""

    def test_update_fields(self, creator, shared_visit, other_cafe):
        visit = update_visit(
            visit_id=shared_visit.id,
            user=creator,
            cafe_id=other_cafe.id,
            status=VisitStatus.COMPLETED,
            max_participants=5,
        )

        assert visit.cafe == other_cafe
        assert visit.status == VisitStatus.COMPLETED
        assert visit.max_participants == 5

    def test_rating_change_updates_creator_review(self, creator, shared_visit):
        update_visit(visit_id=shared_visit.id, user=creator, rating=2, comment='Went downhill')

        review = Review.objects.get(visit=shared_visit, author=creator)
        assert review.rating == 2
        assert review.comment == 'Went downhill'

    def test_first_rating_creates_creator_review(self, creator, cafe):
        visit = create_visit(creator=creator, cafe_id=cafe.id)

        update_visit(visit_id=visit.id, user=creator, rating=3)

        assert Review.objects.get(visit=visit, author=creator).rating == 3

    def test_replace_images(self, creator, cafe):
        visit = create_visit(creator=creator, cafe_id=cafe.id, image_urls=['/media/visits/old.jpg'])

        update_visit(visit_id=visit.id, user=creator, image_urls=['/media/visits/new1.jpg', '/media/visits/new2.jpg'])

        assert list(VisitImage.objects.filter(visit=visit).values_list('image_url', flat=True)) == [
            '/media/visits/new1.jpg',
            '/media/visits/new2.jpg',
        ]

    def test_not_owner(self, friend, shared_visit):
        with pytest.raises(NotVisitOwnerError):
            update_visit(visit_id=shared_visit.id, user=friend, comment='Hijacked')

    def test_max_participants_below_seats_taken(self, creator, shared_visit):
        with pytest.raises(ParticipantLimitError):
            update_visit(visit_id=shared_visit.id, user=creator, max_participants=2)

    def test_unknown_visit(self, creator):
        with pytest.raises(VisitNotFoundError):
            update_visit(visit_id=uuid.uuid4(), user=creator, comment='Nope')


@pytest.mark.django_db
class TestDeleteVisit:
    """Tests for delete_visit."""

    def test_delete_removes_everything(self, creator, friend, shared_visit):
        respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='accept', rating=5)
        VisitImage.objects.create(visit=shared_visit, image_url='/media/visits/x.jpg', position=1)

        delete_visit(visit_id=shared_visit.id, user=creator)

        assert Visit.objects.count() == 0
        assert Participation.objects.count() == 0
        assert Review.objects.count() == 0
        assert VisitImage.objects.count() == 0

    def test_delete_not_owner(self, friend, shared_visit):
        with pytest.raises(NotVisitOwnerError):
            delete_visit(visit_id=shared_visit.id, user=friend)

        assert Visit.objects.filter(id=shared_visit.id).exists()


@pytest.mark.django_db
class TestVisitQueries:
    """Tests for get_visit_by_id and get_user_visits."""

    def test_invitee_can_see_visit(self, friend, shared_visit):
        assert get_visit_by_id(visit_id=shared_visit.id, user=friend) == shared_visit

    def test_outsider_cannot_see_visit(self, stranger, shared_visit):
        with pytest.raises(VisitNotFoundError):
            get_visit_by_id(visit_id=shared_visit.id, user=stranger)

    def test_diary_holds_created_and_accepted(self, creator, friend, cafe, shared_visit):
        solo = create_visit(creator=creator, cafe_id=cafe.id)

        assert set(get_user_visits(user=creator)) == {solo, shared_visit}
        assert list(get_user_visits(user=creator, shared_only=True)) == [shared_visit]

        # Pending invitations are not in the diary yet
        assert list(get_user_visits(user=friend)) == []
        respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='accept')
        assert list(get_user_visits(user=friend)) == [shared_visit]


# =============================================================================
# Participation Management Service Tests
# =============================================================================

@pytest.mark.django_db
class TestRespondToInvitation:
    """Tests for respond_to_invitation."""

    def test_accept_with_review(self, friend, shared_visit):
        participation = respond_to_invitation(
            visit_id=shared_visit.id,
            user=friend,
            decision='accept',
            rating=3,
            comment='A bit crowded',
        )

        assert participation.status == ParticipationStatus.ACCEPTED
        assert participation.responded_at is not None

        participants = get_visit_participants(visit_id=shared_visit.id)
        by_user = {p.user_id: p for p in participants}
        assert by_user[friend.id].review.rating == 3
        assert by_user[friend.id].review.comment == 'A bit crowded'

    def test_accept_without_review(self, friend, shared_visit):
        respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='accept')

        assert not Review.objects.filter(visit=shared_visit, author=friend).exists()

    def test_reject_ignores_review(self, friend, shared_visit):
        participation = respond_to_invitation(
            visit_id=shared_visit.id,
            user=friend,
            decision='reject',
            rating=1,
            comment='Not going',
        )

        assert participation.status == ParticipationStatus.REJECTED
        assert not Review.objects.filter(visit=shared_visit, author=friend).exists()

    def test_second_response_fails_without_review(self, friend, shared_visit):
        respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='accept')

        with pytest.raises(AlreadyRespondedError):
            respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='accept', rating=5)

        assert not Review.objects.filter(visit=shared_visit, author=friend).exists()

    def test_one_accepts_one_rejects(self, friend, second_friend, shared_visit):
        """Creator review plus the accepting friend's review, nothing else."""
        respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='accept', rating=5)
        respond_to_invitation(visit_id=shared_visit.id, user=second_friend, decision='reject', rating=2)

        assert Review.objects.filter(visit=shared_visit).count() == 2

    def test_creator_cannot_respond(self, creator, shared_visit):
        with pytest.raises(AlreadyRespondedError):
            respond_to_invitation(visit_id=shared_visit.id, user=creator, decision='reject')

    def test_not_invited(self, stranger, shared_visit):
        with pytest.raises(NotInvitedError):
            respond_to_invitation(visit_id=shared_visit.id, user=stranger, decision='accept')

    def test_invalid_rating_leaves_invitation_pending(self, friend, shared_visit):
        with pytest.raises(InvalidRatingError):
            respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='accept', rating=9)

        participation = Participation.objects.get(visit=shared_visit, user=friend)
        assert participation.status == ParticipationStatus.PENDING

    def test_invalid_decision(self, friend, shared_visit):
        with pytest.raises(ValueError):
            respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='later')


@pytest.mark.django_db
class TestParticipantQueries:
    """Tests for get_pending_invitations and get_visit_participants."""

    def test_pending_invitations_newest_first(self, creator, friend, cafe, shared_visit):
        newer = create_visit(creator=creator, cafe_id=cafe.id, participant_ids=[friend.id])

        invitations = list(get_pending_invitations(user=friend))

        assert [p.visit_id for p in invitations] == [newer.id, shared_visit.id]
        assert invitations[0].visit.cafe == cafe
        assert invitations[0].visit.creator == creator

    def test_answered_invitations_leave_inbox(self, friend, shared_visit):
        respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='reject')

        assert list(get_pending_invitations(user=friend)) == []

    def test_participants_creator_first(self, creator, friend, second_friend, shared_visit):
        participants = get_visit_participants(visit_id=shared_visit.id, user=friend)

        assert participants[0].user == creator
        assert participants[0].role == ParticipationRole.CREATOR
        assert participants[0].review.rating == 4
        assert {p.user for p in participants[1:]} == {friend, second_friend}
        assert all(p.review is None for p in participants[1:])

    def test_participants_outsider(self, stranger, shared_visit):
        with pytest.raises(NotParticipantError):
            get_visit_participants(visit_id=shared_visit.id, user=stranger)

    def test_participants_unknown_visit(self):
        with pytest.raises(VisitNotFoundError):
            get_visit_participants(visit_id=uuid.uuid4())


@pytest.mark.django_db
class TestRemoveParticipant:
    """Tests for remove_participant."""

    def test_remove_participant_with_review(self, creator, friend, shared_visit):
        respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='accept', rating=5)

        remove_participant(visit_id=shared_visit.id, removed_by=creator, user_id=friend.id)

        assert not Participation.objects.filter(visit=shared_visit, user=friend).exists()
        assert not Review.objects.filter(visit=shared_visit, author=friend).exists()
        assert Review.objects.filter(visit=shared_visit, author=creator).exists()

    def test_cannot_remove_creator(self, creator, shared_visit):
        with pytest.raises(CannotRemoveCreatorError):
            remove_participant(visit_id=shared_visit.id, removed_by=creator, user_id=creator.id)

    def test_only_creator_removes(self, friend, second_friend, shared_visit):
        with pytest.raises(NotVisitOwnerError):
            remove_participant(visit_id=shared_visit.id, removed_by=friend, user_id=second_friend.id)

    def test_remove_unknown_participant(self, creator, stranger, shared_visit):
        with pytest.raises(NotInvitedError):
            remove_participant(visit_id=shared_visit.id, removed_by=creator, user_id=stranger.id)


@pytest.mark.django_db
class TestInviteFriends:
    """Tests for invite_friends."""

    def test_invite_more_friends(self, creator, friend, cafe):
        visit = create_visit(creator=creator, cafe_id=cafe.id)

        participations = invite_friends(visit_id=visit.id, user=creator, friend_ids=[friend.id])

        assert len(participations) == 1
        assert Participation.objects.get(visit=visit, user=friend).status == ParticipationStatus.PENDING

    def test_already_invited(self, creator, friend, shared_visit):
        with pytest.raises(AlreadyInvitedError):
            invite_friends(visit_id=shared_visit.id, user=creator, friend_ids=[friend.id])

    def test_rejected_can_be_invited_again_after_removal(self, creator, friend, shared_visit):
        respond_to_invitation(visit_id=shared_visit.id, user=friend, decision='reject')

        with pytest.raises(AlreadyInvitedError):
            invite_friends(visit_id=shared_visit.id, user=creator, friend_ids=[friend.id])

        remove_participant(visit_id=shared_visit.id, removed_by=creator, user_id=friend.id)
        invite_friends(visit_id=shared_visit.id, user=creator, friend_ids=[friend.id])

        participation = Participation.objects.get(visit=shared_visit, user=friend)
        assert participation.status == ParticipationStatus.PENDING

    def test_invite_stranger(self, creator, stranger, shared_visit):
        with pytest.raises(UnconfirmedFriendsError):
            invite_friends(visit_id=shared_visit.id, user=creator, friend_ids=[stranger.id])

    def test_invite_over_limit(self, creator, friend, second_friend, cafe):
        visit = create_visit(creator=creator, cafe_id=cafe.id, participant_ids=[friend.id], max_participants=2)

        with pytest.raises(ParticipantLimitError):
            invite_friends(visit_id=visit.id, user=creator, friend_ids=[second_friend.id])

    def test_only_creator_invites(self, friend, second_friend, shared_visit):
        with pytest.raises(NotVisitOwnerError):
            invite_friends(visit_id=shared_visit.id, user=friend, friend_ids=[second_friend.id])

    @pytest.mark.django_db(transaction=True)
    def test_friendship_check_locks_inside_transaction(self, creator, friend, cafe):
        visit = create_visit(creator=creator, cafe_id=cafe.id)
        calls = []

        def checked(**kwargs):
            calls.append((connection.in_atomic_block, kwargs.get('lock')))
            return confirm_friends(**kwargs)

        with patch('apps.visits.services.participation_management.confirm_friends', side_effect=checked):
            invite_friends(visit_id=visit.id, user=creator, friend_ids=[friend.id])

        assert calls == [(True, True)]


# =============================================================================
# Image Storage Tests
# =============================================================================

@pytest.mark.django_db
class TestImageStorage:
    """Tests for store_visit_images and discard_visit_images."""

    def test_store_and_discard(self):
        stored = store_visit_images([image_upload(), image_upload('b.png', 'image/png')])

        assert len(stored) == 2
        for image in stored:
            assert image.name.startswith('visits/')
            assert image.url.startswith('/media/visits/')
            assert default_storage.exists(image.name)

        discard_visit_images(stored)
        assert not any(default_storage.exists(image.name) for image in stored)

    def test_reject_non_image(self):
        with pytest.raises(InvalidImageError):
            store_visit_images([SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')])

    @override_settings(VISITS_MAX_IMAGE_SIZE=100)
    def test_reject_large_image(self):
        with pytest.raises(InvalidImageError):
            store_visit_images([image_upload(size=101)])

    def test_reject_too_many(self):
        with pytest.raises(TooManyImagesError):
            store_visit_images([image_upload(f'{i}.jpg') for i in range(6)])


# =============================================================================
# Concurrency Tests
# =============================================================================

class TestConcurrency(TransactionTestCase):
    """
    Tests for concurrency protection using TransactionTestCase.

    Note: TransactionTestCase is required for testing actual database
    transactions and concurrency. Regular TestCase wraps tests in
    a transaction, which doesn't allow testing real concurrency.
    """

    def setUp(self):
        """Create test fixtures."""
        self.creator = User.objects.create_user(email='creator@test.com', password='TestPass123!')
        self.friend = User.objects.create_user(email='friend@test.com', password='TestPass123!')
        Friendship.objects.create(
            requester=self.creator,
            addressee=self.friend,
            status=FriendshipStatus.ACCEPTED,
        )
        self.cafe = Cafe.objects.create(name='Race Café', address='Main St 1')
        self.visit = create_visit(
            creator=self.creator,
            cafe_id=self.cafe.id,
            participant_ids=[self.friend.id],
        )

    def test_concurrent_responses_one_wins(self):
        """Accept and reject racing on one invitation: exactly one succeeds."""
        results = []
        errors = []

        def respond_in_thread(decision):
            try:
                participation = respond_to_invitation(
                    visit_id=self.visit.id,
                    user=self.friend,
                    decision=decision,
                    rating=4,
                )
                results.append(participation.status)
            except AlreadyRespondedError:
                errors.append(decision)
            finally:
                connection.close()

        threads = [
            threading.Thread(target=respond_in_thread, args=(decision,))
            for decision in ('accept', 'reject')
        ]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert len(results) == 1
        assert len(errors) == 1

        participation = Participation.objects.get(visit=self.visit, user=self.friend)
        assert participation.status == results[0]

        reviews = Review.objects.filter(visit=self.visit, author=self.friend).count()
        assert reviews == (1 if results[0] == ParticipationStatus.ACCEPTED else 0)

    def test_concurrent_accepts_single_review(self):
        """Several accept-with-review calls leave one review."""
        results = []
        errors = []

        def accept_in_thread():
            try:
                results.append(respond_to_invitation(
                    visit_id=self.visit.id,
                    user=self.friend,
                    decision='accept',
                    rating=5,
                ))
            except AlreadyRespondedError:
                errors.append(True)
            finally:
                connection.close()

        threads = [threading.Thread(target=accept_in_thread) for _ in range(4)]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert len(results) == 1
        assert len(errors) == 3
        assert Review.objects.filter(visit=self.visit, author=self.friend).count() == 1
