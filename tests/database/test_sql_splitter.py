from src.music_school.music_school.database.bootstrap import split_sql
from src.music_school.music_school.database.connection import DBConfig


def test_split_skips_database_selection_and_comments():
    sql = """
    CREATE DATABASE IF NOT EXISTS music_school;
    USE music_school;
    -- rooms; seeded once
    INSERT INTO rooms (name) VALUES ('Studio A; upstairs');
    INSERT INTO notes (body) VALUES ('it\\'s fine')
    """

    statements = list(split_sql(sql))

    assert statements == [
        "INSERT INTO rooms (name) VALUES ('Studio A; upstairs')",
        "INSERT INTO notes (body) VALUES ('it\\'s fine')",
    ]


def test_backtick_identifiers_keep_semicolons():
    assert list(split_sql("SELECT 1 AS `a;b`;;")) == ["SELECT 1 AS `a;b`"]


def test_db_config_defaults_fill_blanks():
    cfg = DBConfig.from_dict({"host": "", "port": None, "database": "school_test"})

    assert (cfg.host, cfg.port, cfg.database) == ("localhost", 3306, "school_test")
    assert cfg.label() == "root@localhost:3306/school_test"
