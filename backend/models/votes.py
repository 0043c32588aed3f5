"""
Vote sets for reports, comments and replies.

Votes are persisted as two JSON lists of user ids per entity; this module
owns the rules for changing them so that no caller manipulates the lists
directly.
"""

import enum
from typing import Iterable


class VoteType(str, enum.Enum):
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class VoteSet:
    """
    Up-vote and down-vote sets of a single entity.

    A user id is a member of at most one of the two sets. ``toggle`` is the
    only mutator: casting a vote moves the user out of the opposite set, and
    casting the same vote again withdraws it.
    """

    def __init__(
        self, upvotes: Iterable[int] = (), downvotes: Iterable[int] = ()
    ) -> None:
        self._upvotes: set[int] = set(upvotes)
        self._downvotes: set[int] = set(downvotes) - self._upvotes

    @classmethod
    def of(cls, entity: object) -> "VoteSet":
        """Build a vote set from any object with ``upvotes``/``downvotes`` lists."""
        return cls(
            getattr(entity, "upvotes", None) or (),
            getattr(entity, "downvotes", None) or (),
        )

    @property
    def upvotes(self) -> frozenset[int]:
        return frozenset(self._upvotes)

    @property
    def downvotes(self) -> frozenset[int]:
        return frozenset(self._downvotes)

    @property
    def upvote_count(self) -> int:
        return len(self._upvotes)

    @property
    def downvote_count(self) -> int:
        return len(self._downvotes)

    def user_vote(self, user_id: int | None) -> VoteType | None:
        """Return the vote ``user_id`` currently holds, if any."""
        if user_id is None:
            return None
        if user_id in self._upvotes:
            return VoteType.UPVOTE
        if user_id in self._downvotes:
            return VoteType.DOWNVOTE
        return None

    def toggle(self, user_id: int, vote_type: VoteType) -> VoteType | None:
        """
        Cast or withdraw a vote.

        Args:
            user_id: Voting user
            vote_type: Vote being cast

        Returns:
            The user's vote after the toggle (None when withdrawn)
        """
        target, opposite = (
            (self._upvotes, self._downvotes)
            if vote_type == VoteType.UPVOTE
            else (self._downvotes, self._upvotes)
        )
        if user_id in target:
            target.discard(user_id)
            return None
        opposite.discard(user_id)
        target.add(user_id)
        return vote_type

    def apply_to(self, entity: object) -> None:
        """Write the sets back onto ``entity`` as sorted lists."""
        setattr(entity, "upvotes", sorted(self._upvotes))
        setattr(entity, "downvotes", sorted(self._downvotes))
