"""
Service layer tests for reviews app.

Tests all service functions for:
- Review Management (create, get, update, delete)
- Review listings
- Concurrency protection (race conditions, lost updates)
"""

import threading
import uuid

import pytest
from django.db import connection
from django.test import TransactionTestCase

from apps.reviews.models import Review
from apps.reviews.services import (
    record_review,
    create_review,
    get_review_by_id,
    update_review,
    delete_review,
    get_visit_reviews,
    get_user_reviews,
)
from apps.reviews.services.exceptions import (
    ReviewNotFoundError,
    DuplicateReviewError,
    InvalidRatingError,
    NotParticipantError,
    NotReviewOwnerError,
)
from apps.visits.models import Participation


# ============================================================================
# REVIEW MANAGEMENT TESTS
# ============================================================================

@pytest.mark.django_db
class TestCreateReview:
    """Test standalone review creation."""

    def test_create_review_after_accepting(self, accepted_visit, review_friend):
        review = create_review(
            visit_id=accepted_visit.id,
            author=review_friend,
            rating=5,
            comment='Loved the Sachertorte',
        )

        assert review.visit == accepted_visit
        assert review.author == review_friend
        assert review.rating == 5
        assert review.comment == 'Loved the Sachertorte'

    def test_create_review_while_pending(self, visit, review_friend):
        """Invitees must accept before they can review."""
        with pytest.raises(NotParticipantError):
            create_review(visit_id=visit.id, author=review_friend, rating=5)

    def test_create_review_after_rejecting(self, visit, review_friend):
        Participation.objects.filter(visit=visit, user=review_friend).update(status='rejected')

        with pytest.raises(NotParticipantError):
            create_review(visit_id=visit.id, author=review_friend, rating=5)

    def test_create_review_outsider(self, visit, review_other_user):
        with pytest.raises(NotParticipantError):
            create_review(visit_id=visit.id, author=review_other_user, rating=3)

    def test_create_review_duplicate(self, visit, review_creator, creator_review):
        with pytest.raises(DuplicateReviewError):
            create_review(visit_id=visit.id, author=review_creator, rating=2)

        assert Review.objects.filter(visit=visit, author=review_creator).count() == 1

    @pytest.mark.parametrize('rating', [0, 6, None, '5'])
    def test_create_review_invalid_rating(self, accepted_visit, review_friend, rating):
        with pytest.raises(InvalidRatingError):
            create_review(visit_id=accepted_visit.id, author=review_friend, rating=rating)

    def test_record_review_duplicate_translated(self, visit, review_creator, creator_review):
        """The unique constraint surfaces as a domain error."""
        with pytest.raises(DuplicateReviewError):
            record_review(visit=visit, author=review_creator, rating=3)


@pytest.mark.django_db
class TestUpdateDeleteReview:
    """Test review changes by their author."""

    def test_update_review(self, creator_review, review_creator):
        review = update_review(review_id=creator_review.id, user=review_creator, rating=2)

        assert review.rating == 2
        assert review.comment == 'Classic interior'

    def test_update_comment_only(self, creator_review, review_creator):
        review = update_review(review_id=creator_review.id, user=review_creator, comment='')

        assert review.rating == 4
        assert review.comment == ''

    def test_update_not_owner(self, creator_review, review_friend):
        with pytest.raises(NotReviewOwnerError):
            update_review(review_id=creator_review.id, user=review_friend, rating=1)

    def test_update_invalid_rating(self, creator_review, review_creator):
        with pytest.raises(InvalidRatingError):
            update_review(review_id=creator_review.id, user=review_creator, rating=10)

    def test_update_unknown(self, review_creator):
        with pytest.raises(ReviewNotFoundError):
            update_review(review_id=uuid.uuid4(), user=review_creator, rating=3)

    def test_delete_review(self, creator_review, review_creator, visit):
        delete_review(review_id=creator_review.id, user=review_creator)

        assert not Review.objects.filter(id=creator_review.id).exists()
        # Participation stays
        assert Participation.objects.filter(visit=visit, user=review_creator).exists()

    def test_delete_not_owner(self, creator_review, review_friend):
        with pytest.raises(NotReviewOwnerError):
            delete_review(review_id=creator_review.id, user=review_friend)


@pytest.mark.django_db
class TestReviewQueries:
    """Test review lookups and listings."""

    def test_get_review_visible_to_invitee(self, creator_review, review_friend):
        assert get_review_by_id(review_id=creator_review.id, user=review_friend) == creator_review

    def test_get_review_hidden_from_outsider(self, creator_review, review_other_user):
        with pytest.raises(ReviewNotFoundError):
            get_review_by_id(review_id=creator_review.id, user=review_other_user)

    def test_visit_reviews(self, accepted_visit, review_friend, creator_review):
        friend_review = create_review(visit_id=accepted_visit.id, author=review_friend, rating=3)

        reviews = list(get_visit_reviews(visit_id=accepted_visit.id, user=review_friend))

        assert reviews == [friend_review, creator_review]

    def test_visit_reviews_outsider(self, visit, review_other_user):
        with pytest.raises(NotParticipantError):
            get_visit_reviews(visit_id=visit.id, user=review_other_user)

    def test_user_reviews(self, creator_review, review_creator, review_friend):
        assert list(get_user_reviews(user=review_creator)) == [creator_review]
        assert list(get_user_reviews(user=review_friend)) == []


# ============================================================================
# CONCURRENCY TESTS
# ============================================================================

class TestConcurrency(TransactionTestCase):
    """Test concurrency protection with real database transactions."""

    def setUp(self):
        """Set up test data for concurrency tests."""
        from apps.accounts.models import User
        from apps.cafes.models import Cafe
        from apps.friends.models import Friendship, FriendshipStatus
        from apps.visits.services import create_visit, respond_to_invitation

        self.creator = User.objects.create_user(email='creator@example.com', password='TestPass123!')
        self.user = User.objects.create_user(email='concurrent@example.com', password='TestPass123!')
        Friendship.objects.create(requester=self.creator, addressee=self.user, status=FriendshipStatus.ACCEPTED)

        cafe = Cafe.objects.create(name='Concurrent Café', address='Side St 2')
        self.visit = create_visit(creator=self.creator, cafe_id=cafe.id, participant_ids=[self.user.id])
        respond_to_invitation(visit_id=self.visit.id, user=self.user, decision='accept')

    def test_concurrent_review_creation_prevented(self):
        """Multiple concurrent reviews for same (visit, author) should fail."""
        results = []
        errors = []

        def create_in_thread():
            try:
                review = create_review(visit_id=self.visit.id, author=self.user, rating=5)
                results.append(review)
            except DuplicateReviewError:
                errors.append(True)
            finally:
                connection.close()

        # Spawn 5 threads trying to create review simultaneously
        threads = [
            threading.Thread(target=create_in_thread)
            for _ in range(5)
        ]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        # Verify: exactly one review created, four duplicates rejected
        assert len(results) == 1
        assert len(errors) == 4
        assert Review.objects.filter(visit=self.visit, author=self.user).count() == 1

    def test_concurrent_review_updates_no_lost_updates(self):
        """Concurrent review updates serialize correctly."""
        review = create_review(visit_id=self.visit.id, author=self.user, rating=3)
        results = []

        def update_in_thread(new_rating):
            try:
                updated = update_review(review_id=review.id, user=self.user, rating=new_rating)
                results.append(updated.rating)
            finally:
                connection.close()

        threads = [
            threading.Thread(target=update_in_thread, args=(rating,))
            for rating in (1, 2, 4, 5)
        ]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert len(results) == 4
        review.refresh_from_db()
        assert review.rating in results
