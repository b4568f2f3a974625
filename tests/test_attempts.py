import pytest

from quizstore.utils.errors import ForeignKeyConstraintError, QueryValidationError, UniqueConstraintError


@pytest.fixture
def learner(make_user):
    return make_user(stars=20)


@pytest.fixture
def two_quizzes(make_quiz):
    return make_quiz(title="First", display_order=1), make_quiz(title="Second", display_order=2)


@pytest.fixture
def attempts(client, learner, two_quizzes):
    first, second = two_quizzes
    rows = [
        (first, 40, 0),
        (first, 80, 2),
        (first, 100, 3),
        (second, 20, 0),
        (second, 60, 1),
    ]
    result = client.quiz_attempt.create_many(
        data=[
            {"user_id": learner["id"], "quiz_id": quiz["id"], "score": score, "stars_earned": stars}
            for quiz, score, stars in rows
        ]
    )
    assert result == {"count": 5}
    return rows


def test_sum_of_extra_attempt_costs_for_a_user(client, learner, make_user, two_quizzes):
    first, _ = two_quizzes
    other = make_user()
    client.quiz_extra_attempt.create(
        data={"user_id": learner["id"], "quiz_id": first["id"], "stars_cost": 5}
    )
    client.quiz_extra_attempt.create(
        data={"user_id": other["id"], "quiz_id": first["id"], "stars_cost": 7}
    )

    result = client.quiz_extra_attempt.aggregate(
        where={"user_id": learner["id"]}, _sum={"stars_cost": True}
    )
    assert result == {"_sum": {"stars_cost": 5}}


def test_aggregate_functions(client, attempts, two_quizzes):
    first, _ = two_quizzes

    result = client.quiz_attempt.aggregate(
        where={"quiz_id": first["id"]},
        _count=True,
        _avg={"score": True},
        _min={"score": True},
        _max={"score": True, "stars_earned": True},
    )

    assert result["_count"] == 3
    assert result["_avg"] == {"score": pytest.approx(220 / 3)}
    assert result["_min"] == {"score": 40}
    assert result["_max"] == {"score": 100, "stars_earned": 3}


def test_aggregate_over_nothing_returns_nulls(client, learner):
    result = client.quiz_attempt.aggregate(
        where={"user_id": learner["id"]}, _sum={"score": True}, _count={"_all": True}
    )
    assert result == {"_sum": {"score": None}, "_count": {"_all": 0}}


def test_sum_on_text_field_is_rejected(client, attempts):
    with pytest.raises(QueryValidationError):
        client.quiz.aggregate(_sum={"title": True})


def test_count_with_window_and_select(client, attempts):
    assert client.quiz_attempt.count() == 5
    assert client.quiz_attempt.count(where={"score": {"gte": 60}}) == 3
    assert client.quiz_attempt.count(order_by={"score": "asc"}, skip=1, take=2) == 2
    assert client.quiz_attempt.count(select={"_all": True, "score": True}) == {"_all": 5, "score": 5}


def test_group_by_with_having_and_order(client, attempts, two_quizzes):
    first, second = two_quizzes

    groups = client.quiz_attempt.group_by(
        by=["quiz_id"],
        _count=True,
        _sum={"stars_earned": True},
        _avg={"score": True},
        order_by={"_sum": {"stars_earned": "desc"}},
    )
    assert [g["quiz_id"] for g in groups] == [first["id"], second["id"]]
    assert groups[0]["_count"] == 3
    assert groups[0]["_sum"] == {"stars_earned": 5}
    assert groups[1]["_avg"] == {"score": pytest.approx(40.0)}

    passing = client.quiz_attempt.group_by(
        by="quiz_id",
        having={"score": {"_avg": {"gte": 50}}},
        _max={"score": True},
    )
    assert passing == [{"quiz_id": first["id"], "_max": {"score": 100}}]


def test_group_by_rules(client, attempts):
    with pytest.raises(QueryValidationError):
        client.quiz_attempt.group_by(by=["quiz_id"], take=1)

    with pytest.raises(QueryValidationError):
        client.quiz_attempt.group_by(by=["quiz_id"], order_by={"score": "asc"})

    with pytest.raises(QueryValidationError):
        client.quiz_attempt.group_by(by=[])

    limited = client.quiz_attempt.group_by(
        by=["quiz_id"], order_by={"quiz_id": "asc"}, take=1, _count=True
    )
    assert len(limited) == 1


def test_update_many_matching_nothing_changes_nothing(client, attempts):
    before = client.quiz_attempt.find_many(order_by={"score": "asc"})

    result = client.quiz_attempt.update_many(where={"score": {"gt": 1000}}, data={"stars_earned": 9})

    assert result == {"count": 0}
    assert client.quiz_attempt.find_many(order_by={"score": "asc"}) == before


def test_update_many_with_increment(client, attempts, two_quizzes):
    first, _ = two_quizzes

    result = client.quiz_attempt.update_many(
        where={"quiz_id": first["id"]}, data={"stars_earned": {"increment": 1}}
    )

    assert result == {"count": 3}
    assert client.quiz_attempt.aggregate(
        where={"quiz_id": first["id"]}, _sum={"stars_earned": True}
    ) == {"_sum": {"stars_earned": 8}}


def test_update_many_and_return(client, attempts):
    updated = client.quiz_attempt.update_many_and_return(
        where={"score": {"lt": 50}}, data={"score": {"multiply": 2}}, select={"score": True}
    )

    assert sorted(r["score"] for r in updated) == [40, 80]


def test_delete_many(client, attempts):
    assert client.quiz_attempt.delete_many(where={"score": {"lt": 50}}) == {"count": 2}
    assert client.quiz_attempt.delete_many(where={"score": {"lt": 50}}) == {"count": 0}
    assert client.quiz_attempt.count() == 3


def test_deleting_a_user_removes_their_attempts(client, attempts, learner):
    client.user.delete(where={"id": learner["id"]})

    assert client.quiz_attempt.count() == 0


def test_attempt_for_unknown_quiz_is_a_foreign_key_violation(client, learner):
    with pytest.raises(ForeignKeyConstraintError):
        client.quiz_attempt.create(
            data={
                "user_id": learner["id"],
                "quiz_id": "00000000-0000-0000-0000-000000000000",
                "score": 10,
            }
        )


def test_skip_duplicates_still_reports_foreign_key_violations(client, learner, two_quizzes):
    first, _ = two_quizzes
    data = [
        {"user_id": learner["id"], "quiz_id": first["id"], "score": 50},
        {"user_id": learner["id"], "quiz_id": "00000000-0000-0000-0000-000000000000", "score": 1},
    ]

    with pytest.raises(ForeignKeyConstraintError):
        client.quiz_attempt.create_many(data=data, skip_duplicates=True)

    assert client.quiz_attempt.count() == 0


def test_create_many_skip_duplicates(client, theme):
    data = [
        {"position": 2, "title": "Science"},
        {"position": theme["position"], "title": "Clash"},
        {"position": 3, "title": "History"},
    ]

    with pytest.raises(UniqueConstraintError):
        client.theme.create_many(data=data)
    assert client.theme.count() == 1

    assert client.theme.create_many(data=data, skip_duplicates=True) == {"count": 2}
    assert client.theme.count() == 3


def test_create_many_and_return(client, learner, two_quizzes):
    first, second = two_quizzes

    created = client.quiz_extra_attempt.create_many_and_return(
        data=[
            {"user_id": learner["id"], "quiz_id": first["id"], "stars_cost": 5},
            {"user_id": learner["id"], "quiz_id": second["id"], "stars_cost": 10},
        ],
        select={"stars_cost": True, "purchased_at": True},
    )

    assert [r["stars_cost"] for r in created] == [5, 10]
    assert all(r["purchased_at"] is not None for r in created)


def test_a_user_may_attempt_a_quiz_many_times(client, learner, two_quizzes):
    first, _ = two_quizzes
    for score in (10, 20):
        client.quiz_attempt.create(
            data={"user_id": learner["id"], "quiz_id": first["id"], "score": score}
        )

    assert client.quiz_attempt.count(where={"user_id": learner["id"]}) == 2
