"""Tests for competition ranking."""

from tally.models import CanonicalProjectView
from tally.ranking import NO_RANK, assign_ranks, ordinal, podium, rank_projects, sort_by_votes

WEI = 10**18


def _view(pid: str, votes: int, approved: bool = True) -> CanonicalProjectView:
    return CanonicalProjectView(
        project_id=pid, name=f"Project {pid}", approved=approved, vote_count=votes * WEI
    )


class TestAssignRanks:
    def test_tie_shares_rank_and_next_rank_skips(self) -> None:
        views = [_view("a", 300), _view("b", 300), _view("c", 100)]
        assert assign_ranks(views) == [1, 1, 3]

    def test_distinct_votes_have_distinct_ranks(self) -> None:
        views = sort_by_votes([_view("a", 5), _view("b", 50), _view("c", 20), _view("d", 1)])
        assert assign_ranks(views) == [1, 2, 3, 4]
        assert [v.project_id for v in views] == ["b", "c", "a", "d"]

    def test_all_equal(self) -> None:
        assert assign_ranks([_view(str(i), 7) for i in range(4)]) == [1, 1, 1, 1]

    def test_empty(self) -> None:
        assert assign_ranks([]) == []
        assert rank_projects([]) == []

    def test_tie_in_the_middle(self) -> None:
        views = [_view("a", 9), _view("b", 5), _view("c", 5), _view("d", 5), _view("e", 1)]
        assert assign_ranks(views) == [1, 2, 2, 2, 5]


class TestSortByVotes:
    def test_ties_keep_fetch_order(self) -> None:
        views = [_view("x", 10), _view("y", 30), _view("z", 10), _view("w", 30)]
        assert [v.project_id for v in sort_by_votes(views)] == ["y", "w", "x", "z"]

    def test_drops_unapproved(self) -> None:
        views = [_view("a", 10), _view("b", 99, approved=False)]
        assert [v.project_id for v in sort_by_votes(views)] == ["a"]


class TestRankProjects:
    def test_unapproved_never_ranked(self) -> None:
        views = [_view("a", 10), _view("b", 500, approved=False), _view("c", 30)]
        ranked = rank_projects(views)

        assert [(r.project_id, r.rank) for r in ranked] == [("c", 1), ("a", 2), ("b", None)]

    def test_winner_cutoff(self) -> None:
        views = [_view("a", 30), _view("b", 30), _view("c", 10), _view("d", 0)]
        ranked = rank_projects(views, max_winners=2)

        assert [r.is_winner for r in ranked] == [True, True, False, False]

    def test_no_cap_means_all_voted_projects_win(self) -> None:
        ranked = rank_projects([_view("a", 3), _view("b", 0)])
        assert [r.is_winner for r in ranked] == [True, False]

    def test_podium(self) -> None:
        views = [_view(str(i), 10 - i) for i in range(5)] + [_view("x", 99, approved=False)]
        assert [r.project_id for r in podium(rank_projects(views))] == ["0", "1", "2"]


class TestOrdinal:
    def test_suffixes(self) -> None:
        assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 22, 101, 111)] == [
            "1st",
            "2nd",
            "3rd",
            "4th",
            "11th",
            "12th",
            "13th",
            "21st",
            "22nd",
            "101st",
            "111th",
        ]

    def test_no_rank(self) -> None:
        assert ordinal(None) == NO_RANK
        assert ordinal(0) == NO_RANK
