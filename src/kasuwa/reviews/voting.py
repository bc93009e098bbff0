"""VoteOnReview — mark a review helpful or not helpful.

Authors cannot vote on their own review; repeating a vote withdraws it.
"""

from protean import handle
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from kasuwa.domain import kasuwa
from kasuwa.reviews.review import Review


@kasuwa.command(part_of="Review")
class VoteOnReview:
    review_id = Identifier(required=True)
    user_id = Identifier(required=True)
    is_helpful = Boolean(default=True)


@kasuwa.command_handler(part_of=Review)
class VoteOnReviewHandler:
    @handle(VoteOnReview)
    def vote_on_review(self, command):
        repo = current_domain.repository_for(Review)
        review = repo.get(command.review_id)

        review.vote(user_id=command.user_id, is_helpful=command.is_helpful)
        repo.add(review)
        return review.helpful_count
