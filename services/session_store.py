"""
Session Store Adapter: every document write and ordered read of chats,
messages and prompt templates goes through here.

Documents are keyed by the owner's email (``user_id``); messages also carry
their ``chat_id``. Creation timestamps are assigned by the database server
with ``$currentDate``; the local clock is never used. Messages also get a
per-chat insertion ``seq`` so same-millisecond writes keep their order.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from models.chat import Chat, Message
from models.prompt import DEFAULT_PROMPT_TITLE, PromptTemplate
from services.realtime import MessageHub, chats_key, messages_key, prompts_key

logger = logging.getLogger(__name__)


class DocumentNotFound(LookupError):
    """Raised when a document does not exist or belongs to another user."""

    def __init__(self, kind: str, doc_id: str):
        super().__init__(f"{kind} {doc_id} not found")
        self.kind = kind
        self.doc_id = doc_id


def new_id() -> str:
    return str(uuid.uuid4())


def serialize_chat(doc: dict) -> Chat:
    return Chat(
        id=doc["_id"],
        user_id=doc["user_id"],
        title=doc.get("title", ""),
        pinned=doc.get("pinned", False),
        created_at=doc.get("created_at"),
    )


def serialize_message(doc: dict) -> Message:
    return Message(
        id=doc["_id"],
        content=doc["content"],
        role=doc["role"],
        created_at=doc.get("created_at"),
        chat_id=doc.get("chat_id"),
    )


def serialize_prompt(doc: dict) -> PromptTemplate:
    return PromptTemplate(
        id=doc["_id"],
        user_id=doc["user_id"],
        title=doc.get("title", ""),
        prompt=doc.get("prompt", ""),
        created_at=doc.get("created_at"),
    )


class SessionStore:
    """MongoDB-backed store for one application instance"""

    def __init__(self, database: Database, hub: Optional[MessageHub] = None):
        self.db = database
        self.users = database["users"]
        self.chats = database["chats"]
        self.messages = database["messages"]
        self.prompts = database["prompts"]
        self.counters = database["counters"]
        self.hub = hub or MessageHub()

    # ------------------------------------------------------------------
    # low level
    # ------------------------------------------------------------------

    def _insert(self, collection, doc_id: str, fields: Dict[str, Any]) -> dict:
        """Upsert a new document and let the server stamp ``created_at``.

        Re-running the same insert (a retried write) leaves one document.
        """
        collection.update_one(
            {"_id": doc_id},
            {"$setOnInsert": fields, "$currentDate": {"created_at": True}},
            upsert=True,
        )
        return collection.find_one({"_id": doc_id})

    def _next_seq(self, name: str) -> int:
        """Next value of a per-name counter. Gaps are possible, repeats are not."""
        doc = self.counters.find_one_and_update(
            {"_id": name},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return doc["seq"]

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------

    def touch_user(self, email: str, name: Optional[str] = None, image: Optional[str] = None) -> None:
        """Record the profile the identity provider reported for ``email``"""
        self.users.update_one(
            {"_id": email},
            {"$set": {"name": name, "image": image}, "$currentDate": {"last_seen": True}},
            upsert=True,
        )

    # ------------------------------------------------------------------
    # chats
    # ------------------------------------------------------------------

    def create_chat(self, email: str, title: str = "") -> Chat:
        doc = self._insert(self.chats, new_id(), {"user_id": email, "title": title, "pinned": False})
        logger.info(f"Chat {doc['_id']} created for {email}")
        self._publish_chats(email)
        return serialize_chat(doc)

    def list_chats(self, email: str) -> List[Chat]:
        cursor = self.chats.find({"user_id": email}).sort(
            [("pinned", DESCENDING), ("created_at", DESCENDING)]
        )
        return [serialize_chat(doc) for doc in cursor]

    def get_chat(self, email: str, chat_id: str) -> Chat:
        doc = self.chats.find_one({"_id": chat_id, "user_id": email})
        if doc is None:
            raise DocumentNotFound("Chat", chat_id)
        return serialize_chat(doc)

    def update_chat(self, email: str, chat_id: str, title: Optional[str] = None,
                    pinned: Optional[bool] = None) -> Chat:
        update_data: Dict[str, Any] = {}
        if title is not None:
            update_data["title"] = title
        if pinned is not None:
            update_data["pinned"] = pinned

        if update_data:
            result = self.chats.update_one({"_id": chat_id, "user_id": email}, {"$set": update_data})
            if result.matched_count == 0:
                raise DocumentNotFound("Chat", chat_id)
            self._publish_chats(email)
        return self.get_chat(email, chat_id)

    def delete_chat(self, email: str, chat_id: str) -> None:
        """Delete a chat and all its messages."""
        result = self.chats.delete_one({"_id": chat_id, "user_id": email})
        if result.deleted_count == 0:
            raise DocumentNotFound("Chat", chat_id)

        removed = self.messages.delete_many({"user_id": email, "chat_id": chat_id}).deleted_count
        self.counters.delete_one({"_id": f"messages:{chat_id}"})
        logger.info(f"Chat {chat_id} deleted with {removed} messages")
        self._publish_chats(email)

    # ------------------------------------------------------------------
    # messages
    # ------------------------------------------------------------------

    def add_message(self, email: str, chat_id: str, message: Message) -> Message:
        """Append a message to a chat. Messages are never updated afterwards."""
        self.get_chat(email, chat_id)

        doc = self._insert(self.messages, message.id, {
            "user_id": email,
            "chat_id": chat_id,
            "content": message.content,
            "role": message.role,
            "seq": self._next_seq(f"messages:{chat_id}"),
        })
        logger.info(f"Message {message.id} ({message.role}) stored in chat {chat_id}")
        self._publish_messages(email, chat_id)
        return serialize_message(doc)

    def list_messages(self, email: str, chat_id: str, limit: Optional[int] = None) -> List[Message]:
        """Messages of a chat, oldest first. With ``limit`` only the newest ``limit``."""
        query = {"user_id": email, "chat_id": chat_id}
        # seq breaks ties between messages stamped in the same millisecond
        cursor = self.messages.find(query).sort([("created_at", ASCENDING), ("seq", ASCENDING)])
        if limit:
            cursor = cursor.skip(max(0, self.messages.count_documents(query) - limit))
        return [serialize_message(doc) for doc in cursor]

    # ------------------------------------------------------------------
    # prompt templates
    # ------------------------------------------------------------------

    def create_prompt(self, email: str, title: str = "", prompt: str = "") -> PromptTemplate:
        doc = self._insert(self.prompts, new_id(), {
            "user_id": email,
            "title": title or DEFAULT_PROMPT_TITLE,
            "prompt": prompt or "",
        })
        logger.info(f"Prompt template {doc['_id']} created for {email}")
        self._publish_prompts(email)
        return serialize_prompt(doc)

    def list_prompts(self, email: str) -> List[PromptTemplate]:
        cursor = self.prompts.find({"user_id": email}).sort("created_at", DESCENDING)
        return [serialize_prompt(doc) for doc in cursor]

    def get_prompt(self, email: str, prompt_id: str) -> PromptTemplate:
        doc = self.prompts.find_one({"_id": prompt_id, "user_id": email})
        if doc is None:
            raise DocumentNotFound("Prompt", prompt_id)
        return serialize_prompt(doc)

    def update_prompt(self, email: str, prompt_id: str, title: Optional[str] = None,
                      prompt: Optional[str] = None) -> PromptTemplate:
        update_data: Dict[str, Any] = {}
        if title is not None:
            update_data["title"] = title or DEFAULT_PROMPT_TITLE
        if prompt is not None:
            update_data["prompt"] = prompt

        if update_data:
            result = self.prompts.update_one({"_id": prompt_id, "user_id": email}, {"$set": update_data})
            if result.matched_count == 0:
                raise DocumentNotFound("Prompt", prompt_id)
            self._publish_prompts(email)
        return self.get_prompt(email, prompt_id)

    def delete_prompt(self, email: str, prompt_id: str) -> None:
        result = self.prompts.delete_one({"_id": prompt_id, "user_id": email})
        if result.deleted_count == 0:
            raise DocumentNotFound("Prompt", prompt_id)
        logger.info(f"Prompt template {prompt_id} deleted")
        self._publish_prompts(email)

    # ------------------------------------------------------------------
    # live snapshots
    # ------------------------------------------------------------------

    def message_snapshot(self, email: str, chat_id: str) -> List[dict]:
        return [m.model_dump(mode="json") for m in self.list_messages(email, chat_id)]

    def _publish_messages(self, email: str, chat_id: str) -> None:
        key = messages_key(email, chat_id)
        if self.hub.subscriber_count(key):
            self.hub.publish(key, self.message_snapshot(email, chat_id))

    def _publish_chats(self, email: str) -> None:
        key = chats_key(email)
        if self.hub.subscriber_count(key):
            self.hub.publish(key, [c.model_dump(mode="json") for c in self.list_chats(email)])

    def _publish_prompts(self, email: str) -> None:
        key = prompts_key(email)
        if self.hub.subscriber_count(key):
            self.hub.publish(key, [p.model_dump(mode="json") for p in self.list_prompts(email)])
