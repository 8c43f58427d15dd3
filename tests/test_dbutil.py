import pytest
from sqlalchemy import create_engine

from sql_normalizer.dbutil import database_name, query_column, query_value


@pytest.fixture
def conn():
    engine = create_engine("sqlite://")
    with engine.connect() as connection:
        yield connection
    engine.dispose()


def test_database_name():
    assert database_name("foo://host/dbname?query") == "dbname"


def test_database_name_empty():
    assert database_name("foo://host") == ""


def test_query_column(conn):
    val = query_column(
        conn,
        "select 'foo_' || val from (select ? as val union select ?) order by 1",
        "hi",
        "there",
    )
    assert val == ["foo_hi", "foo_there"]


def test_query_value(conn):
    assert query_value(conn, "select ? + ?", "5", 2) == "7"


def test_query_value_no_rows(conn):
    assert query_value(conn, "select 1 where 1 = ?", 0) is None
