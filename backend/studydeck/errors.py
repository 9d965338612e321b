class StudyDeckError(Exception):
    """Base class for errors raised by the scheduling backend."""


class StoreUnavailableError(StudyDeckError):
    """The review-state or card-set store could not be read or written."""


class ReviewConflictError(StudyDeckError):
    """A review kept losing the optimistic version check for its card."""

    def __init__(self, learner_id: str, card_id: str, attempts: int) -> None:
        super().__init__(
            f"review for card {card_id} (learner {learner_id}) "
            f"conflicted {attempts} times"
        )
        self.learner_id = learner_id
        self.card_id = card_id
        self.attempts = attempts
