import pytest

from quizstore.utils.errors import NotFoundError, QueryValidationError, UniqueConstraintError


@pytest.fixture
def quizzes(make_quiz):
    return [
        make_quiz(title="Algebra basics", difficulty="FACILE", display_order=1),
        make_quiz(title="Geometry", difficulty="MOYEN", display_order=2),
        make_quiz(title="Linear algebra", difficulty="DIFFICILE", display_order=3),
        make_quiz(title="Probability", difficulty="MOYEN", display_order=4),
        make_quiz(title="Statistics", difficulty="FACILE", display_order=5),
    ]


def titles(records):
    return [r["title"] for r in records]


def add_question(client, quiz, content="2 + 2 ?", type="QCU", options=(("4", True), ("5", False))):
    question = client.question.create(data={"quiz_id": quiz["id"], "content": content, "type": type})
    for text, correct in options:
        client.option.create(
            data={"question_id": question["id"], "content": text, "is_correct": correct}
        )
    return question


def test_quiz_with_question_and_options_reads_back_nested(client, make_quiz):
    quiz = make_quiz(title="Arithmetic")
    add_question(client, quiz)

    record = client.quiz.find_unique(
        where={"id": quiz["id"]},
        include={"questions": {"include": {"options": True}}},
    )

    assert len(record["questions"]) == 1
    question = record["questions"][0]
    assert question["type"] == "QCU"
    assert len(question["options"]) == 2
    assert sum(1 for option in question["options"] if option["is_correct"]) == 1


def test_create_fills_schema_and_column_defaults(make_quiz):
    quiz = make_quiz()

    assert quiz["description"] == ""
    assert quiz["required_stars"] == 0
    assert quiz["is_free"] is False
    assert quiz["is_active"] is True


def test_duplicate_theme_position_is_rejected(client, theme):
    with pytest.raises(UniqueConstraintError):
        client.theme.create(data={"position": theme["position"], "title": "Science"})


def test_include_to_one_relation(client, make_quiz, theme):
    quiz = make_quiz()

    record = client.quiz.find_unique(
        where={"id": quiz["id"]}, include={"theme": {"select": {"title": True}}}
    )
    assert record["theme"] == {"title": theme["title"]}


def test_deleting_a_quiz_cascades_to_questions_and_options(client, make_quiz):
    quiz = make_quiz()
    add_question(client, quiz)
    add_question(client, quiz, content="3 x 3 ?", options=(("9", True), ("6", False)))
    other = make_quiz(title="Kept")
    add_question(client, other)

    deleted = client.quiz.delete(where={"id": quiz["id"]})

    assert deleted["id"] == quiz["id"]
    assert client.quiz.find_unique(where={"id": quiz["id"]}) is None
    assert client.question.count(where={"quiz_id": quiz["id"]}) == 0
    assert client.question.count() == 1
    assert client.option.count() == 2


def test_deleting_a_theme_cascades_to_its_quizzes(client, theme, quizzes):
    client.theme.delete(where={"id": theme["id"]})

    assert client.quiz.count() == 0


def test_pagination_with_skip_and_take(client, quizzes):
    page = client.quiz.find_many(order_by={"display_order": "asc"}, skip=1, take=2)

    assert titles(page) == ["Geometry", "Linear algebra"]


def test_cursor_pagination_includes_the_cursor_row(client, quizzes):
    page = client.quiz.find_many(
        order_by={"display_order": "asc"}, cursor={"id": quizzes[2]["id"]}, take=2
    )
    assert titles(page) == ["Linear algebra", "Probability"]

    next_page = client.quiz.find_many(
        order_by={"display_order": "asc"}, cursor={"id": page[-1]["id"]}, skip=1, take=2
    )
    assert titles(next_page) == ["Statistics"]


def test_negative_take_pages_backwards(client, quizzes):
    tail = client.quiz.find_many(order_by={"display_order": "asc"}, take=-2)
    assert titles(tail) == ["Probability", "Statistics"]

    before = client.quiz.find_many(
        order_by={"display_order": "asc"}, cursor={"id": quizzes[2]["id"]}, take=-2
    )
    assert titles(before) == ["Geometry", "Linear algebra"]


def test_find_first_honours_order(client, quizzes):
    first = client.quiz.find_first(where={"difficulty": "MOYEN"}, order_by={"display_order": "desc"})
    assert first["title"] == "Probability"

    last = client.quiz.find_first(order_by={"display_order": "asc"}, take=-1)
    assert last["title"] == "Statistics"

    assert client.quiz.find_first(where={"title": "Calculus"}) is None
    with pytest.raises(NotFoundError):
        client.quiz.find_first_or_throw(where={"title": "Calculus"})


def test_insensitive_contains(client, quizzes):
    found = client.quiz.find_many(
        where={"title": {"contains": "ALGEBRA", "mode": "insensitive"}},
        order_by={"display_order": "asc"},
    )
    assert titles(found) == ["Algebra basics", "Linear algebra"]


def test_contains_escapes_wildcards(client, make_quiz):
    make_quiz(title="100% maths")
    make_quiz(title="1000 maths")

    found = client.quiz.find_many(where={"title": {"contains": "0%"}})
    assert titles(found) == ["100% maths"]


def test_distinct_keeps_first_row_per_value(client, quizzes):
    found = client.quiz.find_many(distinct=["difficulty"], order_by={"display_order": "asc"})

    assert titles(found) == ["Algebra basics", "Geometry", "Linear algebra"]


def test_relation_filters(client, quizzes):
    add_question(client, quizzes[0], type="QCU")
    add_question(client, quizzes[1], type="QCM", options=(("a", True), ("b", True)))
    add_question(client, quizzes[1], type="QCU")

    def matching(where):
        return titles(client.quiz.find_many(where=where, order_by={"display_order": "asc"}))

    assert matching({"questions": {"some": {"type": "QCM"}}}) == ["Geometry"]
    assert matching({"questions": {"some": {}}}) == ["Algebra basics", "Geometry"]
    assert matching({"questions": {"none": {}}}) == ["Linear algebra", "Probability", "Statistics"]
    assert "Geometry" not in matching({"questions": {"every": {"type": "QCU"}}})
    assert "Algebra basics" in matching({"questions": {"every": {"type": "QCU"}}})
    assert len(matching({"theme": {"is": {"title": "Math"}}})) == 5
    assert matching({"theme": {"is_not": {"title": "Math"}}}) == []


def test_count_of_relations_in_include(client, quizzes):
    add_question(client, quizzes[0])
    add_question(client, quizzes[0], content="again")

    record = client.quiz.find_unique(
        where={"id": quizzes[0]["id"]},
        include={"_count": {"select": {"questions": True, "attempts": True}}},
    )
    assert record["_count"] == {"questions": 2, "attempts": 0}


def test_nested_relation_arguments(client, make_quiz):
    quiz = make_quiz()
    question = add_question(client, quiz, options=(("b", False), ("a", True), ("c", False)))

    record = client.question.find_unique(
        where={"id": question["id"]},
        select={
            "content": True,
            "options": {"where": {"is_correct": False}, "order_by": {"content": "desc"}, "take": 1},
        },
    )
    assert record["content"] == question["content"]
    assert [o["content"] for o in record["options"]] == ["c"]


def test_bad_query_arguments_are_validation_errors(client, quizzes):
    with pytest.raises(QueryValidationError):
        client.quiz.find_many(order_by={"display_order": "up"})

    with pytest.raises(QueryValidationError):
        client.quiz.find_many(order_by={"nope": "asc"})

    with pytest.raises(QueryValidationError):
        client.quiz.find_many(skip=-1)

    with pytest.raises(QueryValidationError):
        client.quiz.find_many(include={"players": True})

    with pytest.raises(QueryValidationError):
        client.quiz.find_many(where={"questions": {"any": {}}})
