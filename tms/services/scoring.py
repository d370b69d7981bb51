"""
Bid scoring.

Ranks the bids on a load by a weighted mix of price and transporter rating:

    score = price_weight * (1 / proposed_rate) + rating_weight * (rating / max_rating)

Cheaper bids and better-rated transporters score higher. An unrated
transporter counts as rating 0.0. A missing or zero rate is replaced by the
largest float, so its price term is effectively zero.
"""

import sys
from dataclasses import dataclass
from typing import Mapping, Sequence
from uuid import UUID

from pydantic import BaseModel, Field

from tms.domain import Bid, MAX_RATING


class ScoringWeights(BaseModel):
    """Immutable weights for bid scoring."""

    price_weight: float = Field(default=0.7, ge=0)
    rating_weight: float = Field(default=0.3, ge=0)
    max_rating: float = Field(default=MAX_RATING, gt=0)

    model_config = {"frozen": True}


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class ScoredBid:
    """A bid with its computed score."""

    bid: Bid
    score: float


class ScoringPolicy:
    """
    Pure bid ranking.

    Usage:
        policy = ScoringPolicy()
        ranked = policy.rank(bids, {t_id: 4.5})
    """

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def score(self, bid: Bid, transporter_rating: float | None) -> float:
        rating = transporter_rating if transporter_rating is not None else 0.0
        rate = float(bid.proposed_rate) if bid.proposed_rate else sys.float_info.max

        return (
            self.weights.price_weight * (1.0 / rate)
            + self.weights.rating_weight * (rating / self.weights.max_rating)
        )

    def rank(
        self,
        bids: Sequence[Bid],
        ratings: Mapping[UUID, float | None],
    ) -> list[ScoredBid]:
        """
        Score every bid and sort best first.

        Bids of any status are ranked. Equal scores keep their input order.

        Args:
            bids: Bids in retrieval order
            ratings: Transporter rating by transporter id

        Returns:
            Scored bids, highest score first
        """
        scored = [ScoredBid(bid=bid, score=self.score(bid, ratings.get(bid.transporter_id))) for bid in bids]
        return sorted(scored, key=lambda s: s.score, reverse=True)
