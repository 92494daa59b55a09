"""
Wellspring Backend - Session Service Unit Tests
================================================

What:  Tests for SessionService (create, update, publish, delete, listing).
How:   Uses the mocked AsyncSession from conftest; rows are real (detached)
       WellnessSession objects so response models validate as in production.

What we test:
    ✅ Drafts on create, json_url defaulting and validation
    ✅ Partial updates and auto-save timestamps
    ✅ Publish / delete ownership lookups and 404s
    ✅ Pagination math and list items without content
    ✅ Database failures wrapped in DatabaseError
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pydantic
import pytest

from app.exceptions import DatabaseError, NotFoundError, ValidationError
from app.schemas.session import SessionCreate, SessionUpdate
from app.services.session_service import (
    SessionService,
    json_filename_for,
    parse_tag_filter,
    resolve_json_url,
)
from conftest import OWNER_ID, page_results, scalar_result

LONG_AGO = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestJsonUrlHelpers:

    @pytest.mark.parametrize(
        "title, filename",
        [
            ("Morning Flow!", "morning-flow.json"),
            ("  Hello   --  World  ", "hello-world.json"),
            ("Yoga 101: Basics", "yoga-101-basics.json"),
            ("!!!", "session.json"),
        ],
    )
    def test_json_filename_for(self, title, filename):
        assert json_filename_for(title) == filename

    @pytest.mark.parametrize(
        "value",
        ["https://cdn.example.com/s/1.json", "http://example.com/x", "my_file.JSON", "a-b.c.json"],
    )
    def test_valid_json_urls_are_kept(self, value):
        assert resolve_json_url(value, "Ignored") == value

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_json_url_is_derived_from_title(self, value):
        assert resolve_json_url(value, "Morning Flow") == "morning-flow.json"

    @pytest.mark.parametrize("value", ["ftp://example.com/a.json", "notes.txt", "my file.json"])
    def test_invalid_json_url_raises(self, value):
        with pytest.raises(ValidationError):
            resolve_json_url(value, "Title")

    def test_parse_tag_filter(self):
        assert parse_tag_filter("yoga, breathing,,") == ["yoga", "breathing"]
        assert parse_tag_filter(None) == []


class TestSessionSchemas:

    def test_create_trims_title_and_cleans_tags(self):
        payload = SessionCreate(title="  Morning Flow  ", tags=["yoga", " yoga ", "", "breath"])
        assert payload.title == "Morning Flow"
        assert payload.tags == ["yoga", "breath"]

    def test_blank_title_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            SessionCreate(title="   ")

    def test_title_longer_than_100_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            SessionCreate(title="x" * 101)

    def test_tag_longer_than_30_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            SessionUpdate(tags=["t" * 31])


class TestSessionServiceCreate:

    def setup_method(self):
        self.service = SessionService()

    @pytest.mark.asyncio
    async def test_create_makes_draft(self, mock_db_session):
        payload = SessionCreate(title="Morning Flow!", tags=["yoga"], content={"title": "x"})

        result = await self.service.create(mock_db_session, OWNER_ID, payload)

        assert result.owner_id == OWNER_ID
        assert result.is_draft is True
        assert result.is_published is False
        assert result.json_url == "morning-flow.json"
        assert result.content == {"title": "x"}
        assert result.last_auto_save is not None
        mock_db_session.add.assert_called_once()
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_without_content_stores_empty_document(self, mock_db_session):
        result = await self.service.create(mock_db_session, OWNER_ID, SessionCreate(title="T"))
        assert result.content == {}

    @pytest.mark.asyncio
    async def test_create_rejects_invalid_json_url(self, mock_db_session):
        payload = SessionCreate(title="T", json_url="not a url")

        with pytest.raises(ValidationError):
            await self.service.create(mock_db_session, OWNER_ID, payload)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_wraps_database_errors(self, mock_db_session):
        mock_db_session.flush = AsyncMock(side_effect=RuntimeError("connection lost"))

        with pytest.raises(DatabaseError):
            await self.service.create(mock_db_session, OWNER_ID, SessionCreate(title="T"))


class TestSessionServiceUpdate:

    def setup_method(self):
        self.service = SessionService()

    @pytest.mark.asyncio
    async def test_auto_save_updates_timestamp_and_given_fields(self, mock_db_session, make_session):
        existing = make_session(tags=["yoga"], last_auto_save=LONG_AGO)
        mock_db_session.execute.return_value = scalar_result(existing)

        result = await self.service.update(
            mock_db_session,
            OWNER_ID,
            existing.id,
            SessionUpdate(title="Renamed", is_auto_save=True),
        )

        assert result.title == "Renamed"
        assert result.tags == ["yoga"]
        assert result.last_auto_save > LONG_AGO

    @pytest.mark.asyncio
    async def test_manual_save_keeps_auto_save_timestamp(self, mock_db_session, make_session):
        existing = make_session(last_auto_save=LONG_AGO)
        mock_db_session.execute.return_value = scalar_result(existing)

        result = await self.service.update(
            mock_db_session, OWNER_ID, existing.id, SessionUpdate(content={"title": "new"})
        )

        assert result.content == {"title": "new"}
        assert result.last_auto_save == LONG_AGO

    @pytest.mark.asyncio
    async def test_blank_json_url_rederived_from_title(self, mock_db_session, make_session):
        existing = make_session(title="Evening Calm", json_url="https://example.com/old.json")
        mock_db_session.execute.return_value = scalar_result(existing)

        result = await self.service.update(
            mock_db_session, OWNER_ID, existing.id, SessionUpdate(json_url="")
        )

        assert result.json_url == "evening-calm.json"

    @pytest.mark.asyncio
    async def test_update_missing_session_raises_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            await self.service.update(mock_db_session, OWNER_ID, uuid4(), SessionUpdate(title="X"))


class TestSessionServicePublishDelete:

    def setup_method(self):
        self.service = SessionService()

    @pytest.mark.asyncio
    async def test_publish(self, mock_db_session, make_session):
        existing = make_session()
        mock_db_session.execute.return_value = scalar_result(existing)

        result = await self.service.publish(mock_db_session, OWNER_ID, existing.id)

        assert result.is_published is True
        assert result.is_draft is False

    @pytest.mark.asyncio
    async def test_publish_other_users_session_is_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            await self.service.publish(mock_db_session, "someone_else", uuid4())

    @pytest.mark.asyncio
    async def test_delete(self, mock_db_session, make_session):
        existing = make_session()
        mock_db_session.execute.return_value = scalar_result(existing)

        await self.service.delete(mock_db_session, OWNER_ID, existing.id)

        mock_db_session.delete.assert_awaited_once_with(existing)


class TestSessionServiceReads:

    def setup_method(self):
        self.service = SessionService()

    @pytest.mark.asyncio
    async def test_list_public_pagination(self, mock_db_session, make_session):
        rows = [make_session(is_published=True, is_draft=False) for _ in range(5)]
        mock_db_session.execute = AsyncMock(side_effect=page_results(rows, total=12))

        result = await self.service.list_public(mock_db_session, page=1, limit=5, tags="yoga")

        assert len(result.sessions) == 5
        assert result.total_count == 12
        assert result.total_pages == 3
        assert result.current_page == 1
        assert "content" not in result.sessions[0].model_dump()

    @pytest.mark.asyncio
    async def test_list_empty(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=page_results([], total=0))

        result = await self.service.list_mine(mock_db_session, OWNER_ID)

        assert result.sessions == []
        assert result.total_pages == 0

    @pytest.mark.asyncio
    async def test_list_mine_rejects_unknown_status(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.list_mine(mock_db_session, OWNER_ID, status="archived")

    @pytest.mark.asyncio
    async def test_list_wraps_database_errors(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(DatabaseError):
            await self.service.list_public(mock_db_session)

    @pytest.mark.asyncio
    async def test_get_public_found(self, mock_db_session, make_session):
        existing = make_session(is_published=True, is_draft=False)
        mock_db_session.execute.return_value = scalar_result(existing)

        result = await self.service.get_public(mock_db_session, existing.id)

        assert result.id == existing.id
        assert result.content == existing.content

    @pytest.mark.asyncio
    async def test_get_mine_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            await self.service.get_mine(mock_db_session, OWNER_ID, uuid4())
