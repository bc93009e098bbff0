"""Review aggregate — a customer's rating of a product, plus helpful votes.

Reviews start unapproved and only appear in product listings once an
administrator approves them. ``is_verified_purchase`` is decided once, at
submission, from the VerifiedPurchases projection.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from kasuwa.domain import kasuwa
from kasuwa.reviews.events import (
    HelpfulVoteRecorded,
    ReviewEdited,
    ReviewModerated,
    ReviewSubmitted,
)

# Sentinel for distinguishing "not provided" from None in partial updates
_UNSET = object()


@kasuwa.value_object(part_of="Review")
class Rating:
    """A star rating from 1 to 5."""

    score = Integer(required=True)

    @invariant.post
    def score_must_be_in_range(self):
        if self.score is not None and (self.score < 1 or self.score > 5):
            raise ValidationError({"rating": ["Rating must be between 1 and 5"]})


@kasuwa.entity(part_of="Review")
class HelpfulVote:
    user_id = Identifier(required=True)
    is_helpful = Boolean(required=True)
    voted_at = DateTime(required=True)


@kasuwa.aggregate
class Review:
    product_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    rating = ValueObject(Rating, required=True)
    title = String(max_length=200)
    comment = Text()
    reviewer_name = String(max_length=100)

    # Moderation
    is_approved = Boolean(default=False)
    approved_at = DateTime()
    approved_by = Identifier()
    admin_notes = Text()

    is_verified_purchase = Boolean(default=False)

    votes = HasMany(HelpfulVote)
    helpful_count = Integer(default=0)

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def title_or_comment_required(self):
        if not (self.title and self.title.strip()) and not (self.comment and self.comment.strip()):
            raise ValidationError({"comment": ["A review needs a title or a comment"]})

    @classmethod
    def submit(cls, product_id, customer_id, rating, title=None, comment=None, reviewer_name=None, verified=False):
        now = datetime.now(UTC)
        review = cls(
            product_id=product_id,
            customer_id=customer_id,
            rating=Rating(score=rating),
            title=title,
            comment=comment,
            reviewer_name=reviewer_name,
            is_approved=False,
            is_verified_purchase=verified,
            helpful_count=0,
            created_at=now,
            updated_at=now,
        )
        review.raise_(
            ReviewSubmitted(
                review_id=str(review.id),
                product_id=str(product_id),
                customer_id=str(customer_id),
                rating=rating,
                title=title,
                comment=comment,
                is_verified_purchase=verified,
                submitted_at=now,
            )
        )
        return review

    def edit(self, customer_id, rating=_UNSET, title=_UNSET, comment=_UNSET):
        """Change the content. Only the author may, and only before approval."""
        if str(customer_id) != str(self.customer_id):
            raise ValidationError({"customer_id": ["Only the review author can edit this review"]})
        if self.is_approved:
            raise ValidationError({"review": ["Approved reviews can no longer be edited"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            if rating is not _UNSET and rating is not None:
                self.rating = Rating(score=rating)
            if title is not _UNSET:
                self.title = title
            if comment is not _UNSET:
                self.comment = comment
            self.updated_at = now

        self.raise_(
            ReviewEdited(
                review_id=str(self.id),
                rating=self.rating.score,
                title=self.title,
                comment=self.comment,
                edited_at=now,
            )
        )

    def moderate(self, approve, admin_id, notes=None):
        now = datetime.now(UTC)
        self.is_approved = bool(approve)
        self.approved_at = now
        self.approved_by = admin_id
        self.admin_notes = notes
        self.updated_at = now

        self.raise_(
            ReviewModerated(
                review_id=str(self.id),
                product_id=str(self.product_id),
                is_approved=self.is_approved,
                moderated_by=str(admin_id),
                admin_notes=notes,
                moderated_at=now,
            )
        )

    def vote(self, user_id, is_helpful):
        """Vote helpful or not. Repeating the same vote withdraws it."""
        if str(user_id) == str(self.customer_id):
            raise ValidationError({"vote": ["Cannot vote on your own review"]})

        now = datetime.now(UTC)
        existing = next((v for v in self.votes if str(v.user_id) == str(user_id)), None)
        if existing is None:
            self.add_votes(HelpfulVote(user_id=user_id, is_helpful=is_helpful, voted_at=now))
            recorded = is_helpful
        elif existing.is_helpful == is_helpful:
            self.remove_votes(existing)
            recorded = None
        else:
            existing.is_helpful = is_helpful
            existing.voted_at = now
            self.add_votes(existing)
            recorded = is_helpful

        self.helpful_count = sum(1 for v in self.votes if v.is_helpful)
        self.updated_at = now

        self.raise_(
            HelpfulVoteRecorded(
                review_id=str(self.id),
                user_id=str(user_id),
                is_helpful=recorded,
                helpful_count=self.helpful_count,
                voted_at=now,
            )
        )
