# ranking/vote_controller.py

from database.rating_store import VoteEvent
from processing.catalog import INITIAL_RATING, K_FACTOR, validate_catalog
from ranking.matchups import MatchupSampler
from ranking.ranking_system import rank
from ranking.session import RankingSession
from utilities.helpers import log_message, timestamp_ms
from utilities.identity import share_url


class VoteController:
    """
    Per-run voting state: who is voting, whose ranking is shown, the current
    matchup and the in-memory rating maps. Persistence goes through a
    RatingPersistence and never blocks a vote from completing.
    """
    def __init__(self, catalog, persistence, identity, k_factor=K_FACTOR,
                 sampler=None, logger=None):
        self.catalog = validate_catalog(catalog)
        self.persistence = persistence
        self.identity = identity
        self.session = RankingSession(self.catalog, k_factor)
        self.sampler = sampler or MatchupSampler(self.catalog)
        self.logger = logger or log_message

        self.current_matchup = None
        self.personal_ratings = self._defaults()
        self.subject_ratings = self.personal_ratings
        self.global_ratings = self._defaults()
        self.total_votes = 0
        self.vote_count = 0
        self.subject_vote_count = 0
        self.unique_voters = 0

    def _defaults(self):
        return {album.id: INITIAL_RATING for album in self.catalog}

    @property
    def viewer_id(self):
        return self.identity.viewer_id

    @property
    def subject_id(self):
        return self.identity.subject_id

    def load(self):
        """Load the viewer's, the subject's and the global ratings; absent records start at defaults."""
        self.personal_ratings = self.persistence.get_user_ratings(self.viewer_id) or self._defaults()
        self.vote_count = self.persistence.get_vote_count(self.viewer_id)

        if self.identity.is_viewing_other:
            self.subject_ratings = self.persistence.get_user_ratings(self.subject_id) or self._defaults()
            self.subject_vote_count = self.persistence.get_vote_count(self.subject_id)
            if self.subject_ratings != self._defaults():
                # votes may have been cast on another machine; the count is local-only
                self.subject_vote_count = max(self.subject_vote_count, 1)
        else:
            self.subject_ratings = self.personal_ratings
            self.subject_vote_count = self.vote_count

        self.refresh_global()

    def refresh_global(self):
        aggregate = self.persistence.get_global_aggregate()
        if aggregate is not None:
            self.global_ratings = aggregate.ratings
            self.total_votes = aggregate.total_votes
        self.unique_voters = self.persistence.count_unique_voters() or 0

    def next_matchup(self):
        self.current_matchup = self.sampler.next()
        return self.current_matchup

    def vote(self, winner_id):
        """
        Record a vote for one side of the current matchup.
        Returns (winner, loser, VoteResult). Storage failures are logged, not raised.
        """
        matchup = self.current_matchup
        if matchup is None:
            raise ValueError("No matchup to vote on")
        loser = matchup.other(winner_id)
        winner = matchup.left if matchup.left.id == winner_id else matchup.right
        # consumed before persisting so the same matchup can't be submitted twice
        self.current_matchup = None

        # other voters may have moved the aggregate since it was last read
        self.refresh_global()

        result = self.session.record_vote(
            self.personal_ratings, self.global_ratings, winner.id, loser.id
        )
        self.personal_ratings = result.actor_ratings
        self.global_ratings = result.global_ratings
        self.vote_count += 1
        self.total_votes += 1
        if not self.identity.is_viewing_other:
            self.subject_ratings = self.personal_ratings
            self.subject_vote_count = self.vote_count

        self._persist(winner.id, loser.id)
        return winner, loser, result

    def _persist(self, winner_id, loser_id):
        now = timestamp_ms()
        p = self.persistence
        if p.append_vote_event(VoteEvent(self.viewer_id, winner_id, loser_id, now)) is None:
            self.logger(f"Vote {winner_id} > {loser_id} was not recorded")
        if not p.put_user_ratings(self.viewer_id, self.personal_ratings):
            self.logger("Personal ratings were not saved")
        if not p.merge_global_aggregate(
            winner_id, self.global_ratings[winner_id],
            loser_id, self.global_ratings[loser_id],
        ):
            self.logger("Global ratings were not saved")
        p.record_unique_voter(self.viewer_id, now)
        p.put_vote_count(self.viewer_id, self.vote_count)

    def personal_rankings(self):
        """Rankings of the subject (the viewer unless a shared link was opened)."""
        return rank(self.subject_ratings, self.catalog)

    def global_rankings(self):
        return rank(self.global_ratings, self.catalog)

    def vote_history(self):
        """Stored votes cast by the subject, oldest first."""
        votes = self.persistence.get_user_votes(self.subject_id)
        return sorted(votes, key=lambda v: v.get('timestamp') or 0)

    def has_personal_votes(self):
        return self.subject_vote_count > 0

    def share_url(self, base_url):
        # always the viewer's own ranking, even while looking at someone else's
        return share_url(base_url, self.viewer_id)
