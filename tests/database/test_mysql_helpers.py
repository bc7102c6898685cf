from __future__ import annotations

from datetime import time, timedelta

import pytest
from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from src.attendance_engine.attendance_engine.database.bootstrap import DEFAULT_SCHEMA_PATH, iter_sql_statements
from src.attendance_engine.attendance_engine.database.mysql_base import is_duplicate_key, normalize_mysql_time


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        (time(8, 30), time(8, 30)),
        (timedelta(hours=8, minutes=30), time(8, 30)),
        ("08:30", time(8, 30)),
        ("08:30:15", time(8, 30, 15)),
        (timedelta(hours=25, minutes=5), time(1, 5)),
    ],
)
def test_normalize_mysql_time(value, expected):
    assert normalize_mysql_time(value) == expected


def test_duplicate_key_detection():
    assert is_duplicate_key(IntegrityError(msg="dup", errno=errorcode.ER_DUP_ENTRY))
    assert not is_duplicate_key(IntegrityError(msg="fk", errno=errorcode.ER_NO_REFERENCED_ROW_2))
    assert not is_duplicate_key(ValueError("x"))


def test_sql_splitter_ignores_semicolons_in_quotes_and_comments():
    sql = "-- header; not a statement\nCREATE TABLE a (x INT);\nINSERT INTO a VALUES ('a;b');\n"
    assert list(iter_sql_statements(sql)) == ["CREATE TABLE a (x INT)", "INSERT INTO a VALUES ('a;b')"]


def test_schema_file_defines_every_table():
    statements = list(iter_sql_statements(DEFAULT_SCHEMA_PATH.read_text(encoding="utf-8")))
    creates = " ".join(s for s in statements if s.upper().startswith("CREATE TABLE"))
    for table in ("users", "teacher_subjects", "attendance_sessions", "attendance_records", "otp_challenges", "od_requests"):
        assert f"CREATE TABLE IF NOT EXISTS {table} " in creates
