"""
Unit tests for database session helpers.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from mailsub.core import database


@pytest.fixture
def mock_session(monkeypatch):
    session = AsyncMock()
    session.__aenter__.return_value = session
    session.__aexit__.return_value = False
    monkeypatch.setattr(database, "get_session_factory", MagicMock(return_value=MagicMock(return_value=session)))
    return session


class TestGetDbContext:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, mock_session):
        async with database.get_db_context() as db:
            assert db is mock_session

        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, mock_session):
        with pytest.raises(RuntimeError):
            async with database.get_db_context():
                raise RuntimeError("boom")

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_called()


class TestEngine:
    @pytest.mark.asyncio
    async def test_close_db_resets_globals(self, monkeypatch):
        engine = MagicMock()
        engine.dispose = AsyncMock()
        monkeypatch.setattr(database, "_engine", engine)
        monkeypatch.setattr(database, "_session_factory", MagicMock())

        await database.close_db()

        engine.dispose.assert_awaited_once()
        assert database._engine is None
        assert database._session_factory is None
