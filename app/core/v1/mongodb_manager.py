"""MongoDB Manager for persisting chat sessions and messages."""

from typing import Dict, List, Optional, Any
from datetime import datetime
import threading

from bson import ObjectId
from pymongo import AsyncMongoClient, ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.settings.v1.general import SETTINGS
from app.core.v1.exceptions import DatabaseException
from app.core.v1.log_manager import LogManager


class MongoDBManager:
    """
    Persistence adapter over MongoDB for the ``sessions`` and ``messages``
    collections. Implements Singleton pattern so the connection pool is
    created once per process and reused.

    Every public coroutine raises ``DatabaseException`` on failure; callers
    decide how to degrade.
    """
    
    _instance = None
    _lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        """Create singleton instance with thread safety."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, client: Optional[AsyncMongoClient] = None):
        """
        Initialize MongoDB manager (only once due to singleton pattern).

        Args:
            client: Optional pre-built client, mainly for tests.
        """
        if getattr(self, '_initialized', False):
            return
            
        self.logger = LogManager(__name__)
        
        self.sessions_collection = SETTINGS.MONGODB_COLLECTION_SESSIONS
        self.messages_collection = SETTINGS.MONGODB_COLLECTION_MESSAGES
        
        self.client = client or AsyncMongoClient(
            SETTINGS.MONGODB_URL,
            serverSelectionTimeoutMS=SETTINGS.MONGODB_TIMEOUT_MS
        )
        self.database = self.client[SETTINGS.MONGODB_DATABASE]
        self.sessions_col = self.database[self.sessions_collection]
        self.messages_col = self.database[self.messages_collection]
        self._indexes_ready = False
        
        self._initialized = True

    @classmethod
    def reset_instance(cls):
        """Forget the singleton so the next construction builds a new client."""
        with cls._lock:
            cls._instance = None

    async def connect(self):
        """
        Verify the server is reachable and make sure indexes exist.

        Raises:
            DatabaseException: If MongoDB cannot be reached.
        """
        try:
            await self.client.admin.command("ping")
            await self._create_indexes()
            
            self.logger.info(
                "MongoDB connection established successfully",
                database=SETTINGS.MONGODB_DATABASE,
                sessions_collection=self.sessions_collection,
                messages_collection=self.messages_collection
            )
            
        except PyMongoError as err:
            self.logger.error(f"MongoDB connection failed: {err}")
            raise DatabaseException(f"MongoDB connection failed: {err}") from err

    async def _create_indexes(self):
        """
        Create indexes for session lookup and message ordering.

        ``session_key`` is unique only among active sessions, so a cleared
        (soft-deleted) key can be started again as a new row.
        """
        indexes_to_create = [
            (self.sessions_col, [("session_key", ASCENDING)], {
                "unique": True,
                "partialFilterExpression": {"is_active": True},
                "name": "session_key_active_unique"
            }),
            (self.sessions_col, [("is_active", ASCENDING)], {"name": "is_active_index"}),
            (self.sessions_col, [("last_active_at", ASCENDING)], {"name": "last_active_at_index"}),
            (self.messages_col, [("session_id", ASCENDING), ("created_at", ASCENDING)], {
                "name": "session_created_at_index"
            }),
        ]
        
        created_count = 0
        for collection, index_spec, options in indexes_to_create:
            index_name = options.get('name', 'unnamed')
            try:
                await collection.create_index(index_spec, **options)
                created_count += 1
                self.logger.debug(f"Ensured index: {index_name}")
            except PyMongoError as err:
                if "already exists" in str(err).lower():
                    created_count += 1
                    self.logger.debug(f"Index already exists with other options: {index_name}")
                else:
                    self.logger.warning(f"Failed to create index {index_name}: {err}")
        
        self.logger.info(
            f"MongoDB indexes processed (ensured: {created_count}, total attempted: {len(indexes_to_create)})"
        )
        self._indexes_ready = created_count == len(indexes_to_create)

    async def ping(self) -> bool:
        """Return True when the server answers a ping."""
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as err:
            self.logger.warning(f"MongoDB ping failed: {err}")
            return False

    async def find_active_session(self, session_key: str) -> Optional[Dict[str, Any]]:
        """Get the active session row for a session key.
        
        Args:
            session_key (str): Opaque client-facing session identifier.
            
        Returns:
            Optional[Dict[str, Any]]: Session row or None if there is none.
            
        Raises:
            DatabaseException: If the lookup fails.
        """
        try:
            row = await self.sessions_col.find_one(
                {"session_key": session_key, "is_active": True}
            )
        except PyMongoError as err:
            self.logger.error(f"Failed to find session: {err}", session_key=session_key)
            raise DatabaseException(f"Session lookup failed: {err}") from err

        if not self._indexes_ready:
            # Startup could not reach the server; indexes are created on first successful use
            await self._create_indexes()

        return row

    async def create_session(
        self,
        session_key: str,
        preferred_language: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Insert a new active session row.
        
        Returns:
            Dict[str, Any]: The inserted row including its ``_id``.
            
        Raises:
            DatabaseException: If the insert fails.
        """
        now = datetime.now()
        row = {
            "session_key": session_key,
            "created_at": now,
            "last_active_at": now,
            "is_active": True,
            "preferred_language": preferred_language,
            "metadata": metadata or {},
        }
        try:
            result = await self.sessions_col.insert_one(row)
            row["_id"] = result.inserted_id
            
            self.logger.info("Session created in MongoDB", session_key=session_key)
            return row

        except DuplicateKeyError:
            # Created concurrently by another request
            existing = await self.find_active_session(session_key)
            if existing is None:
                raise DatabaseException(f"Session creation raced for {session_key}")
            return existing
        except PyMongoError as err:
            self.logger.error(f"Failed to create session: {err}", session_key=session_key)
            raise DatabaseException(f"Session creation failed: {err}") from err

    async def touch_session(self, session_row_id: ObjectId):
        """Update ``last_active_at`` of a session row.
        
        Raises:
            DatabaseException: If the update fails.
        """
        try:
            await self.sessions_col.update_one(
                {"_id": session_row_id},
                {"$set": {"last_active_at": datetime.now()}}
            )
        except PyMongoError as err:
            self.logger.error(f"Failed to update session activity: {err}")
            raise DatabaseException(f"Session update failed: {err}") from err

    async def get_messages(self, session_row_id: ObjectId) -> List[Dict[str, Any]]:
        """Get all messages of a session in insertion order.
        
        Raises:
            DatabaseException: If the query fails.
        """
        try:
            cursor = self.messages_col.find({"session_id": session_row_id}).sort(
                [("created_at", ASCENDING), ("_id", ASCENDING)]
            )
            return [doc async for doc in cursor]
        except PyMongoError as err:
            self.logger.error(f"Failed to fetch messages: {err}")
            raise DatabaseException(f"Message retrieval failed: {err}") from err

    async def insert_message(self, session_row_id: ObjectId, message: Dict[str, Any]) -> str:
        """Insert a message row for a session.
        
        Args:
            session_row_id (ObjectId): ``_id`` of the parent session row.
            message (Dict[str, Any]): Row fields following the messages schema.
            
        Returns:
            str: Inserted message id.
            
        Raises:
            DatabaseException: If the insert fails.
        """
        row = dict(message)
        row["session_id"] = session_row_id
        row.setdefault("created_at", datetime.now())
        try:
            result = await self.messages_col.insert_one(row)
            return str(result.inserted_id)
        except PyMongoError as err:
            self.logger.error(f"Failed to save message: {err}")
            raise DatabaseException(f"Message save failed: {err}") from err

    async def deactivate_session(self, session_key: str) -> int:
        """Soft delete: mark the active row for a key as inactive.
        
        Returns:
            int: Number of rows modified.
            
        Raises:
            DatabaseException: If the update fails.
        """
        try:
            result = await self.sessions_col.update_many(
                {"session_key": session_key, "is_active": True},
                {"$set": {"is_active": False, "deactivated_at": datetime.now()}}
            )
            return result.modified_count
        except PyMongoError as err:
            self.logger.error(f"Failed to deactivate session: {err}", session_key=session_key)
            raise DatabaseException(f"Session deactivation failed: {err}") from err

    async def list_active_sessions(self) -> List[Dict[str, Any]]:
        """List active sessions with their message counts.
        
        Returns:
            List[Dict[str, Any]]: ``session_key``, ``created_at``, ``message_count``.
            
        Raises:
            DatabaseException: If the aggregation fails.
        """
        pipeline = [
            {"$match": {"is_active": True}},
            {"$lookup": {
                "from": self.messages_collection,
                "localField": "_id",
                "foreignField": "session_id",
                "as": "messages"
            }},
            {"$project": {
                "_id": 0,
                "session_key": 1,
                "created_at": 1,
                "message_count": {"$size": "$messages"}
            }},
            {"$sort": {"created_at": -1}},
        ]
        try:
            cursor = await self.sessions_col.aggregate(pipeline)
            return [doc async for doc in cursor]
        except PyMongoError as err:
            self.logger.error(f"Failed to list sessions: {err}")
            raise DatabaseException(f"Session listing failed: {err}") from err

    async def count_active_sessions(self) -> int:
        """Count active sessions.
        
        Raises:
            DatabaseException: If the count fails.
        """
        try:
            return await self.sessions_col.count_documents({"is_active": True})
        except PyMongoError as err:
            self.logger.error(f"Failed to count sessions: {err}")
            raise DatabaseException(f"Session count failed: {err}") from err

    async def count_messages(self) -> int:
        """Count all stored messages.
        
        Raises:
            DatabaseException: If the count fails.
        """
        try:
            return await self.messages_col.count_documents({})
        except PyMongoError as err:
            self.logger.error(f"Failed to count messages: {err}")
            raise DatabaseException(f"Message count failed: {err}") from err

    async def close(self):
        """
        Close MongoDB connection.
        """
        try:
            await self.client.close()
            self.logger.info("MongoDB connection closed successfully")
        except PyMongoError as err:
            self.logger.error(f"Failed to close MongoDB connection: {err}")
        finally:
            type(self).reset_instance()
