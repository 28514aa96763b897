"""Инструменты AI-агента: запросы к данным чтения текущего пользователя."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from clurb.db.repositories.annotation_repository import StickyNoteRepository
from clurb.db.repositories.document_repository import DocumentRepository, MembershipRepository
from clurb.db.repositories.friendship_repository import FriendshipRepository
from clurb.db.repositories.reading_repository import ReadingProgressRepository
from clurb.db.repositories.user_repository import ProfileRepository
from clurb.domains.activity.entities import ActionType
from clurb.domains.activity.services import ActivityService
from clurb.domains.documents.entities import Document
from clurb.domains.reading.entities import ReadingProgress
from clurb.infrastructure import pdf
from clurb.infrastructure.storage import LocalObjectStorage, get_storage

logger = logging.getLogger(__name__)

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "get_user_books",
        "description": "Get a list of all books/files in the user's library with their reading progress",
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "get_book_progress",
        "description": "Get the user's reading progress for a specific book by title",
        "input_schema": {
            "type": "object",
            "properties": {
                "book_title": {"type": "string", "description": "The title or partial title of the book"},
            },
            "required": ["book_title"],
        },
    },
    {
        "name": "get_last_read_book",
        "description": "Get the last book/file the user was reading",
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "get_reading_activity",
        "description": "Get reading activity summary for a time period (last week, month, etc.)",
        "input_schema": {
            "type": "object",
            "properties": {
                "days": {"type": "integer", "minimum": 1, "description": "Number of days to look back"},
            },
            "required": ["days"],
        },
    },
    {
        "name": "get_daily_reading_stats",
        "description": "Get daily page reading counts for charting over a time period",
        "input_schema": {
            "type": "object",
            "properties": {
                "days": {"type": "integer", "minimum": 1, "description": "Number of days to look back"},
            },
            "required": ["days"],
        },
    },
    {
        "name": "get_friend_notes",
        "description": "Get sticky notes that friends have left in the user's files",
        "input_schema": {
            "type": "object",
            "properties": {
                "limit": {"type": "integer", "minimum": 1, "description": "Maximum number of notes to return"},
            },
        },
    },
    {
        "name": "get_friend_progress",
        "description": "Get a specific friend's reading progress on books shared with the user",
        "input_schema": {
            "type": "object",
            "properties": {
                "friend_username": {"type": "string", "description": "The friend's username"},
                "book_title": {"type": "string", "description": "Optional title to narrow the result"},
            },
            "required": ["friend_username"],
        },
    },
    {
        "name": "get_friends_reading_book",
        "description": "Find which friends are also reading a specific book",
        "input_schema": {
            "type": "object",
            "properties": {
                "book_title": {"type": "string", "description": "The title or partial title of the book"},
            },
            "required": ["book_title"],
        },
    },
    {
        "name": "get_user_friends",
        "description": "Get a list of the user's friends",
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "get_document_text",
        "description": "Get the extracted text of a range of pages of a PDF book, for summaries and questions about its content",
        "input_schema": {
            "type": "object",
            "properties": {
                "book_title": {"type": "string", "description": "The title or partial title of the book"},
                "start_page": {"type": "integer", "minimum": 1},
                "end_page": {"type": "integer", "minimum": 1},
            },
            "required": ["book_title"],
        },
    },
]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _book_summary(document: Document, progress: Optional[ReadingProgress]) -> Dict[str, Any]:
    current_page = progress.current_page if progress else 0
    percent = progress.percent_complete(document.total_pages) if progress else 0
    return {
        "title": document.title,
        "total_pages": document.total_pages,
        "current_page": current_page,
        "last_read_at": _iso(progress.last_read_at) if progress else None,
        "percent_complete": percent,
    }


class ReadingTools:
    """Исполнители инструментов агента для одного пользователя"""

    def __init__(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        storage: Optional[LocalObjectStorage] = None,
        text_max_chars: int = 20000
    ):
        self.user_id = user_id
        self.storage = storage or get_storage()
        self.text_max_chars = text_max_chars
        self.document_repository = DocumentRepository(session)
        self.membership_repository = MembershipRepository(session)
        self.friendship_repository = FriendshipRepository(session)
        self.progress_repository = ReadingProgressRepository(session)
        self.note_repository = StickyNoteRepository(session)
        self.profile_repository = ProfileRepository(session)
        self.activity_service = ActivityService(session)

    async def execute(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Вызов инструмента по имени"""
        handler = getattr(self, name, None)
        if name not in TOOL_NAMES or handler is None:
            raise LookupError(f"Unknown tool: {name}")
        logger.info(f"Agent tool {name} for user {self.user_id}")
        return await handler(**(arguments or {}))

    async def _progress_map(self) -> Dict[uuid.UUID, ReadingProgress]:
        return {p.document_id: p for p in await self.progress_repository.list_for_user(self.user_id)}

    async def get_user_books(self) -> Dict[str, Any]:
        documents = await self.document_repository.get_for_member(self.user_id)
        if not documents:
            return {"found": False, "message": "No books in your library yet."}
        progress = await self._progress_map()
        return {
            "found": True,
            "count": len(documents),
            "books": [_book_summary(d, progress.get(d.uuid)) for d in documents],
        }

    async def get_book_progress(self, book_title: str) -> Dict[str, Any]:
        documents = await self.document_repository.search_for_member(self.user_id, book_title)
        if not documents:
            return {"found": False, "message": f'Could not find a book matching "{book_title}" in your library.'}
        progress = await self._progress_map()
        books = []
        for document in documents:
            summary = _book_summary(document, progress.get(document.uuid))
            summary["has_started"] = document.uuid in progress
            books.append(summary)
        return {"found": True, "search_query": book_title, "match_count": len(books), "books": books}

    async def get_last_read_book(self) -> Dict[str, Any]:
        for progress in await self.progress_repository.list_for_user(self.user_id):
            document = await self.document_repository.get_by_uuid(progress.document_id)
            if document is None:
                continue
            return {
                "found": True,
                "title": document.title,
                "current_page": progress.current_page,
                "total_pages": document.total_pages,
                "last_read_at": _iso(progress.last_read_at),
            }
        return {"found": False, "message": "No reading history found."}

    async def get_reading_activity(self, days: int) -> Dict[str, Any]:
        events = await self.activity_service.events_since(self.user_id, days)
        if not events:
            return {"has_activity": False, "message": f"No reading activity in the last {days} days."}

        titles = []
        for document_id in dict.fromkeys(e.document_id for e in events if e.document_id):
            document = await self.document_repository.get_by_uuid(document_id)
            if document:
                titles.append(document.title)

        return {
            "has_activity": True,
            "days": days,
            "pages_viewed": sum(1 for e in events if e.action_type == ActionType.PAGE_VIEWED),
            "notes_created": sum(1 for e in events if e.action_type == ActionType.STICKY_NOTE_CREATED),
            "messages_sent": sum(1 for e in events if e.action_type == ActionType.CHAT_MESSAGE_SENT),
            "books_read": len(titles),
            "book_titles": titles[:5],
        }

    async def get_daily_reading_stats(self, days: int) -> Dict[str, Any]:
        return {"data": await self.activity_service.daily_page_views(self.user_id, days)}

    async def get_friend_notes(self, limit: int = 10) -> Dict[str, Any]:
        owned = {d.uuid: d for d in await self.document_repository.get_owned(self.user_id)}
        if not owned:
            return {"found": False, "message": "No files found."}

        friend_ids = await self.friendship_repository.friend_ids(self.user_id)
        notes = await self.note_repository.list_by_authors(owned.keys(), friend_ids, limit)
        if not notes:
            return {"found": False, "message": "No friend notes found in your files."}

        authors = {p.uuid: p for p in await self.profile_repository.get_many({n.author_id for n in notes})}
        return {
            "found": True,
            "notes": [
                {
                    "content": note.content,
                    "author": authors[note.author_id].name if note.author_id in authors else None,
                    "page": note.page_number,
                    "file_title": owned[note.document_id].title,
                    "created_at": _iso(note.created_at),
                }
                for note in notes
            ],
        }

    async def get_friend_progress(self, friend_username: str, book_title: Optional[str] = None) -> Dict[str, Any]:
        username = friend_username.lstrip("@")
        friend = await self.profile_repository.get_by_username(username)
        if friend is None:
            return {"found": False, "message": f"Could not find user @{username}"}
        if friend.uuid not in await self.friendship_repository.friend_ids(self.user_id):
            return {"found": False, "message": f"@{username} is not in your friends list."}

        mine = set(await self.membership_repository.document_ids_for_user(self.user_id))
        shared = [d for d in await self.membership_repository.document_ids_for_user(friend.uuid) if d in mine]
        if not shared:
            return {"found": False, "message": f"No shared books with @{username}"}

        friend_progress = {p.document_id: p for p in await self.progress_repository.list_for_user(friend.uuid)}
        books = []
        for document_id in shared:
            document = await self.document_repository.get_by_uuid(document_id)
            if document is None:
                continue
            if book_title and book_title.lower() not in document.title.lower():
                continue
            if document_id in friend_progress:
                books.append(_book_summary(document, friend_progress[document_id]))

        if not books:
            return {"found": False, "message": f"@{username} hasn't started reading your shared books yet."}
        return {"found": True, "friend": friend.name, "progress": books}

    async def get_friends_reading_book(self, book_title: str) -> Dict[str, Any]:
        documents = await self.document_repository.search_for_member(self.user_id, book_title, limit=1)
        if not documents:
            return {"found": False, "message": f'Could not find a book matching "{book_title}".'}
        document = documents[0]

        friend_ids = await self.friendship_repository.friend_ids(self.user_id)
        members = [
            m for m in await self.membership_repository.list_for_document(document.uuid)
            if m.user_id in friend_ids
        ]
        if not members:
            return {
                "found": True,
                "book_title": document.title,
                "friends": [],
                "message": "No friends are reading this book yet.",
            }

        profiles = {p.uuid: p for p in await self.profile_repository.get_many(m.user_id for m in members)}
        progress = {p.user_id: p for p in await self.progress_repository.list_for_document(document.uuid)}
        friends = []
        for member in members:
            profile = profiles.get(member.user_id)
            member_progress = progress.get(member.user_id)
            friends.append({
                "username": profile.username if profile else None,
                "display_name": profile.name if profile else None,
                "current_page": member_progress.current_page if member_progress else 0,
                "last_read_at": _iso(member_progress.last_read_at) if member_progress else None,
            })
        return {"found": True, "book_title": document.title, "friend_count": len(friends), "friends": friends}

    async def get_user_friends(self) -> Dict[str, Any]:
        friend_ids = await self.friendship_repository.friend_ids(self.user_id)
        if not friend_ids:
            return {"found": False, "message": "You don't have any friends added yet."}

        profiles = sorted(await self.profile_repository.get_many(friend_ids), key=lambda p: p.username)
        return {
            "found": True,
            "count": len(profiles),
            "friends": [{"username": p.username, "display_name": p.name} for p in profiles],
        }

    async def get_document_text(
        self,
        book_title: str,
        start_page: int = 1,
        end_page: Optional[int] = None
    ) -> Dict[str, Any]:
        documents = await self.document_repository.search_for_member(self.user_id, book_title, limit=1)
        if not documents:
            return {"found": False, "message": f'Could not find a book matching "{book_title}".'}
        document = documents[0]
        if not document.is_pdf:
            return {"found": False, "message": f'"{document.title}" is not a PDF, its text is unavailable.'}

        if end_page is not None and end_page < start_page:
            raise ValueError("end_page must not be before start_page")

        if not self.storage.is_owned_by(document.file_url, document.owner_id):
            return {"found": False, "message": f'The file of "{document.title}" is not in the library storage.'}

        data = await asyncio.to_thread(self.storage.get, document.file_url)
        pages = await asyncio.to_thread(pdf.extract_pages, data, start_page, end_page)
        text = "\n\n".join(
            f"[Page {start_page + offset}]\n{page_text.strip()}" for offset, page_text in enumerate(pages)
        )
        truncated = len(text) > self.text_max_chars
        return {
            "found": True,
            "title": document.title,
            "start_page": start_page,
            "end_page": start_page + len(pages) - 1 if pages else start_page,
            "text": text[:self.text_max_chars],
            "truncated": truncated,
        }


TOOL_NAMES = frozenset(tool["name"] for tool in TOOL_DEFINITIONS)
