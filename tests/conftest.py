import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import quizstore.v1.models  # noqa: F401
from quizstore.db.database import Base, build_engine
from quizstore.v1.repositories import Client


@pytest.fixture
def engine():
    engine = build_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def client(session_factory):
    return Client(session_factory)


@pytest.fixture
def make_user(client):
    counter = {"n": 0}

    def _make_user(**overrides):
        counter["n"] += 1
        data = {
            "email": f"learner{counter['n']}@quiz.io",
            "first_name": "Learner",
            "last_name": str(counter["n"]),
        }
        data.update(overrides)
        return client.user.create(data=data)

    return _make_user


@pytest.fixture
def theme(client):
    return client.theme.create(data={"position": 1, "title": "Math", "description": "Numbers"})


@pytest.fixture
def make_quiz(client, theme):
    def _make_quiz(**overrides):
        data = {
            "theme_id": theme["id"],
            "title": "Quiz",
            "difficulty": "FACILE",
            "time_limit": 300,
            "passing_score": 60,
        }
        data.update(overrides)
        return client.quiz.create(data=data)

    return _make_quiz
