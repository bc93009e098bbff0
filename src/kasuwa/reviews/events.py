"""Domain events for the Review aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from kasuwa.domain import kasuwa


@kasuwa.event(part_of="Review")
class ReviewSubmitted:
    """A customer submitted a review, awaiting moderation."""

    __version__ = 1

    review_id = Identifier(required=True)
    product_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    rating = Integer(required=True)
    title = String()
    comment = Text()
    is_verified_purchase = Boolean(required=True)
    submitted_at = DateTime(required=True)


@kasuwa.event(part_of="Review")
class ReviewEdited:
    __version__ = 1

    review_id = Identifier(required=True)
    rating = Integer(required=True)
    title = String()
    comment = Text()
    edited_at = DateTime(required=True)


@kasuwa.event(part_of="Review")
class ReviewModerated:
    """An administrator approved or rejected the review."""

    __version__ = 1

    review_id = Identifier(required=True)
    product_id = Identifier(required=True)
    is_approved = Boolean(required=True)
    moderated_by = Identifier(required=True)
    admin_notes = Text()
    moderated_at = DateTime(required=True)


@kasuwa.event(part_of="Review")
class HelpfulVoteRecorded:
    __version__ = 1

    review_id = Identifier(required=True)
    user_id = Identifier(required=True)
    is_helpful = Boolean()  # None when the vote was withdrawn
    helpful_count = Integer(required=True)
    voted_at = DateTime(required=True)
