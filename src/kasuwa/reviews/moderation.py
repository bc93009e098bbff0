"""ModerateReview — approve or reject a review."""

from protean import handle
from protean.fields import Boolean, Identifier, Text
from protean.utils.globals import current_domain

from kasuwa.domain import kasuwa, logger
from kasuwa.reviews.review import Review


@kasuwa.command(part_of="Review")
class ModerateReview:
    review_id = Identifier(required=True)
    admin_id = Identifier(required=True)
    approve = Boolean(default=True)
    notes = Text()


@kasuwa.command_handler(part_of=Review)
class ModerateReviewHandler:
    @handle(ModerateReview)
    def moderate_review(self, command):
        repo = current_domain.repository_for(Review)
        review = repo.get(command.review_id)

        review.moderate(approve=command.approve, admin_id=command.admin_id, notes=command.notes)
        repo.add(review)

        logger.info("review_moderated", review_id=str(review.id), approved=review.is_approved)
