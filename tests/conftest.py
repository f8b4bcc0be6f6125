from types import SimpleNamespace

import faker
import pytest

from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from schoolgraph.models import metadata
from schoolgraph.repository import create_repositories


fake = faker.Faker()


def student_data(school_id, **kwargs):
    data = {
        "first_name": fake.first_name(),
        "last_name": fake.last_name(),
        "email": fake.unique.email(),
        "school_id": school_id,
    }
    data.update(kwargs)
    return data


def user_data(**kwargs):
    data = {
        "first_name": fake.first_name(),
        "last_name": fake.last_name(),
        "email": fake.unique.email(),
        "password": fake.password(),
    }
    data.update(kwargs)
    return data


@pytest.fixture(name="sa_engine")
def sa_engine_fixture():
    sa_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(sa_engine)
    yield sa_engine
    sa_engine.dispose()


@pytest.fixture(name="statements")
def statements_fixture(sa_engine):
    statements = []

    def before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):
        statements.append(statement)

    event.listen(sa_engine, "before_cursor_execute", before_cursor_execute)
    yield statements
    event.remove(sa_engine, "before_cursor_execute", before_cursor_execute)


@pytest.fixture(name="repos")
def repos_fixture(sa_engine):
    return create_repositories(sa_engine)


@pytest.fixture(name="data")
def data_fixture(repos):
    """Schools with students:

    - alpha: two active students and a soft-deleted one
    - beta: one student
    - empty: no students
    - closed: soft-deleted school with one student
    """
    alpha = repos.schools.create({"name": "Alpha", "address": fake.address()})
    beta = repos.schools.create({"name": "Beta"})
    empty = repos.schools.create({"name": "Empty"})
    closed = repos.schools.create({"name": "Closed"})

    alpha_students = [
        repos.students.create(student_data(alpha["id"])),
        repos.students.create(student_data(alpha["id"])),
    ]
    expelled = repos.students.create(student_data(alpha["id"]))
    repos.students.soft_delete(expelled["id"])
    beta_students = [repos.students.create(student_data(beta["id"]))]
    closed_students = [repos.students.create(student_data(closed["id"]))]
    repos.schools.soft_delete(closed["id"])

    return SimpleNamespace(
        alpha=alpha,
        beta=beta,
        empty=empty,
        closed=closed,
        alpha_students=alpha_students,
        expelled=expelled,
        beta_students=beta_students,
        closed_students=closed_students,
    )
