"""SubmitReview and EditReview — commands and handler.

One review per customer per product is enforced here, since it needs a
repository query across reviews.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from kasuwa.catalogue.queries import load_product
from kasuwa.domain import kasuwa, logger
from kasuwa.projections.verified_purchases import has_verified_purchase
from kasuwa.reviews.review import Review


@kasuwa.command(part_of="Review")
class SubmitReview:
    product_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    rating = Integer(required=True)
    title = String(max_length=200)
    comment = Text()
    reviewer_name = String(max_length=100)


@kasuwa.command(part_of="Review")
class EditReview:
    review_id = Identifier(required=True)
    customer_id = Identifier(required=True)  # Must match the author
    rating = Integer()
    title = String(max_length=200)
    comment = Text()


@kasuwa.command_handler(part_of=Review)
class ReviewSubmissionHandler:
    @handle(SubmitReview)
    def submit_review(self, command):
        if load_product(command.product_id) is None:
            raise ObjectNotFoundError(f"Product {command.product_id} not found")

        repo = current_domain.repository_for(Review)
        existing = repo._dao.query.filter(
            customer_id=str(command.customer_id),
            product_id=str(command.product_id),
        ).all()
        if existing.items:
            raise ValidationError({"review": ["You have already reviewed this product"]})

        verified = has_verified_purchase(command.customer_id, command.product_id)
        review = Review.submit(
            product_id=command.product_id,
            customer_id=command.customer_id,
            rating=command.rating,
            title=command.title,
            comment=command.comment,
            reviewer_name=command.reviewer_name,
            verified=verified,
        )
        repo.add(review)

        logger.info(
            "review_submitted",
            review_id=str(review.id),
            product_id=str(command.product_id),
            verified=verified,
        )
        return str(review.id)

    @handle(EditReview)
    def edit_review(self, command):
        repo = current_domain.repository_for(Review)
        review = repo.get(command.review_id)

        kwargs = {}
        if command.rating is not None:
            kwargs["rating"] = command.rating
        if command.title is not None:
            kwargs["title"] = command.title
        if command.comment is not None:
            kwargs["comment"] = command.comment

        review.edit(command.customer_id, **kwargs)
        repo.add(review)
