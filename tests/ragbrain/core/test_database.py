import pytest
from ragbrain.core.database import build_engine, is_sqlite, normalize_db_url
from ragbrain.core.exceptions import ConfigurationError
from ragbrain.models.conversation import ConversationMessage
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session


def test_normalize_db_url():
    assert normalize_db_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_db_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_db_url("postgresql+psycopg://h/db") == "postgresql+psycopg://h/db"
    assert normalize_db_url("sqlite:///x.db") == "sqlite:///x.db"
    with pytest.raises(ConfigurationError):
        normalize_db_url("not-a-url")


def test_is_sqlite():
    assert is_sqlite("sqlite://")
    assert not is_sqlite("postgresql+psycopg://h/db")


def test_sqlite_file_engine_uses_wal(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ragbrain.db'}")
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
    engine.dispose()


def test_message_requires_existing_conversation(engine):
    with Session(engine) as session:
        session.add(
            ConversationMessage(
                id="msg_1", conversation_id="conv_missing", seq=0, role="user", content="hi"
            )
        )
        with pytest.raises(IntegrityError):
            session.commit()
