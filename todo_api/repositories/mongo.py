"""MongoDB repository implementations."""

import logging
from typing import Any, Optional, Sequence

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..domain.errors import (
    InvalidIdError,
    StoreError,
    TaskNotFoundError,
    ValidationError,
)
from ..domain.models import (
    EntityId,
    Note,
    PageRequest,
    SortOrder,
    Task,
    TaskFilter,
    TaskId,
    TaskPriority,
    TaskTotals,
    User,
    UserId,
    utcnow,
    validate_changes,
)

logger = logging.getLogger(__name__)


def to_object_id(entity_id: EntityId) -> ObjectId:
    """Convert a domain id to a BSON ObjectId."""
    try:
        return ObjectId(entity_id.value)
    except (InvalidId, TypeError):
        raise InvalidIdError(entity_id.value)


def task_to_document(task: Task) -> dict:
    """Convert a Task to a MongoDB document."""
    return {
        "_id": to_object_id(task.id),
        "title": task.title,
        "description": task.description,
        "priority": task.priority.value,
        "completed": task.completed,
        "tags": list(task.tags),
        "mentions": [to_object_id(m) for m in task.mentions],
        "notes": [
            {
                "content": note.content,
                "createdBy": to_object_id(note.created_by),
                "createdAt": note.created_at,
            }
            for note in task.notes
        ],
        "userId": to_object_id(task.user_id),
        "createdAt": task.created_at,
        "updatedAt": task.updated_at,
    }


def document_to_task(doc: dict) -> Task:
    """Convert a MongoDB document to a Task."""
    return Task(
        id=TaskId(str(doc["_id"])),
        title=doc.get("title", ""),
        description=doc.get("description"),
        priority=TaskPriority(doc.get("priority", TaskPriority.MEDIUM.value)),
        completed=bool(doc.get("completed", False)),
        tags=list(doc.get("tags") or []),
        mentions=[UserId(str(m)) for m in doc.get("mentions") or []],
        notes=[
            Note(
                content=n.get("content", ""),
                created_by=UserId(str(n["createdBy"])),
                created_at=n.get("createdAt") or utcnow(),
            )
            for n in doc.get("notes") or []
        ],
        user_id=UserId(str(doc["userId"])),
        created_at=doc.get("createdAt") or utcnow(),
        updated_at=doc.get("updatedAt") or utcnow(),
    )


def changes_to_document(changes: dict[str, Any]) -> dict:
    """Convert allow-listed task changes to a $set document."""
    document = {}
    for key, value in changes.items():
        if key == "priority":
            document["priority"] = value.value
        elif key == "mentions":
            document["mentions"] = [to_object_id(m) for m in value]
        else:
            document[key] = value
    return document


def filter_to_query(filter: TaskFilter) -> dict:
    """Build a MongoDB query document from a TaskFilter."""
    query: dict[str, Any] = {"userId": to_object_id(filter.owner_id)}

    if filter.priority is not None:
        query["priority"] = filter.priority.value
    if filter.completed is not None:
        query["completed"] = filter.completed
    # Equality against an array field is a membership test
    if filter.tag is not None:
        query["tags"] = filter.tag
    if filter.mention_id is not None:
        query["mentions"] = to_object_id(filter.mention_id)
    if filter.search is not None:
        query["$or"] = [
            {"title": {"$regex": filter.search, "$options": "i"}},
            {"description": {"$regex": filter.search, "$options": "i"}},
        ]

    return query


def _count_where(field: str, value: Any) -> dict:
    return {"$sum": {"$cond": [{"$eq": [f"${field}", value]}, 1, 0]}}


def totals_pipeline(owner_id: UserId) -> list[dict]:
    """Build the grouping pipeline for one user's statistics."""
    return [
        {"$match": {"userId": to_object_id(owner_id)}},
        {
            "$group": {
                "_id": None,
                "totalTodos": {"$sum": 1},
                "completedTodos": _count_where("completed", True),
                "highPriority": _count_where("priority", TaskPriority.HIGH.value),
                "mediumPriority": _count_where("priority", TaskPriority.MEDIUM.value),
                "lowPriority": _count_where("priority", TaskPriority.LOW.value),
            }
        },
    ]


def user_to_document(user: User) -> dict:
    """Convert a User to a MongoDB document."""
    return {
        "_id": to_object_id(user.id),
        "username": user.username,
        "name": user.name,
        "email": user.email,
    }


def document_to_user(doc: dict) -> User:
    """Convert a MongoDB document to a User."""
    return User(
        id=UserId(str(doc["_id"])),
        username=doc.get("username", ""),
        name=doc.get("name", ""),
        email=doc.get("email", ""),
    )


class MongoConnection:
    """Explicitly opened and closed handle on a MongoDB database."""

    def __init__(
        self,
        uri: Optional[str] = None,
        database: str = "todo_app",
        *,
        timeout_ms: int = 5000,
        client: Optional[AsyncMongoClient] = None,
    ) -> None:
        """Initialize the connection handle.

        Args:
            uri: MongoDB connection string
            database: Database name
            timeout_ms: Server selection timeout in milliseconds
            client: Optional client for testing
        """
        if client is None and not uri:
            raise ValueError("A MongoDB URI or client is required")
        if client is None:
            client = AsyncMongoClient(
                uri, tz_aware=True, serverSelectionTimeoutMS=timeout_ms
            )
        self._client = client
        self._database_name = database
        self._opened = False
        self._closed = False

    def collection(self, name: str):
        """Get a collection of the configured database."""
        return self._client[self._database_name][name]

    async def open(self) -> None:
        """Verify the server is reachable. Safe to call more than once."""
        if self._opened:
            return
        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            raise StoreError(f"Cannot connect to MongoDB: {e}", e)
        self._opened = True
        logger.info(f"Connected to MongoDB database {self._database_name}")

    async def close(self) -> None:
        """Close the client. Safe to call more than once."""
        if self._closed:
            return
        await self._client.close()
        self._closed = True
        logger.info("MongoDB connection closed")


class MongoTaskStore:
    """TaskStore backed by a MongoDB collection."""

    def __init__(self, connection: MongoConnection, collection: str = "todos") -> None:
        self._connection = connection
        self._collection = connection.collection(collection)

    async def open(self) -> None:
        """Open the connection and ensure indexes."""
        await self._connection.open()
        try:
            await self._collection.create_index(
                [("userId", ASCENDING), ("createdAt", DESCENDING)],
                name="user_created_at",
            )
        except PyMongoError as e:
            raise StoreError(f"Failed to create todo indexes: {e}", e)

    async def close(self) -> None:
        await self._connection.close()

    async def find(self, filter: TaskFilter, page: PageRequest) -> Sequence[Task]:
        """Return one sorted page of tasks matching filter."""
        direction = ASCENDING if page.sort_order == SortOrder.ASC else DESCENDING
        try:
            cursor = (
                self._collection.find(filter_to_query(filter))
                .sort(page.sort_by, direction)
                .skip(page.skip)
                .limit(page.limit)
            )
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Todo query failed: {e}")
            raise StoreError(str(e), e)
        return [document_to_task(doc) for doc in docs]

    async def count(self, filter: TaskFilter) -> int:
        """Count tasks matching filter."""
        try:
            return await self._collection.count_documents(filter_to_query(filter))
        except PyMongoError as e:
            logger.error(f"Todo count failed: {e}")
            raise StoreError(str(e), e)

    async def get_by_id(self, task_id: TaskId) -> Optional[Task]:
        """Retrieve a single task by ID."""
        try:
            doc = await self._collection.find_one({"_id": to_object_id(task_id)})
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return document_to_task(doc) if doc else None

    async def create(self, task: Task) -> Task:
        """Insert a new task."""
        task.validate()
        try:
            await self._collection.insert_one(task_to_document(task))
        except DuplicateKeyError:
            raise ValueError(f"Task {task.id.value} already exists")
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return task

    async def create_many(self, tasks: Sequence[Task]) -> Sequence[Task]:
        """Insert several tasks in one call."""
        if not tasks:
            return []
        for task in tasks:
            task.validate()
        try:
            await self._collection.insert_many([task_to_document(t) for t in tasks])
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return list(tasks)

    async def update_owned(
        self, task_id: TaskId, owner_id: UserId, changes: dict[str, Any]
    ) -> Optional[Task]:
        """Apply changes in one conditional write matching id and owner."""
        validate_changes(changes)
        update = {"$set": {**changes_to_document(changes), "updatedAt": utcnow()}}
        try:
            doc = await self._collection.find_one_and_update(
                {"_id": to_object_id(task_id), "userId": to_object_id(owner_id)},
                update,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return document_to_task(doc) if doc else None

    async def save(self, task: Task) -> Task:
        """Replace the stored document with the task's state."""
        task.validate()
        task.updated_at = utcnow()
        try:
            result = await self._collection.replace_one(
                {"_id": to_object_id(task.id)}, task_to_document(task)
            )
        except PyMongoError as e:
            raise StoreError(str(e), e)
        if result.matched_count == 0:
            raise TaskNotFoundError(task.id.value)
        return task

    async def delete(
        self, task_id: TaskId, owner_id: Optional[UserId] = None
    ) -> Optional[Task]:
        """Delete a task, optionally only if owned by owner_id."""
        query: dict[str, Any] = {"_id": to_object_id(task_id)}
        if owner_id is not None:
            query["userId"] = to_object_id(owner_id)
        try:
            doc = await self._collection.find_one_and_delete(query)
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return document_to_task(doc) if doc else None

    async def aggregate_totals(self, owner_id: UserId) -> Optional[TaskTotals]:
        """Run the grouping pipeline for one user."""
        try:
            cursor = await self._collection.aggregate(totals_pipeline(owner_id))
            results = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Todo aggregation failed: {e}")
            raise StoreError(str(e), e)

        if not results:
            return None

        group = results[0]
        return TaskTotals(
            total=group.get("totalTodos", 0),
            completed=group.get("completedTodos", 0),
            high_priority=group.get("highPriority", 0),
            medium_priority=group.get("mediumPriority", 0),
            low_priority=group.get("lowPriority", 0),
        )

    async def clear(self) -> None:
        """Remove every task."""
        try:
            await self._collection.delete_many({})
        except PyMongoError as e:
            raise StoreError(str(e), e)


class MongoUserDirectory:
    """UserDirectory backed by a MongoDB collection."""

    def __init__(self, connection: MongoConnection, collection: str = "users") -> None:
        self._connection = connection
        self._collection = connection.collection(collection)

    async def open(self) -> None:
        """Open the connection and ensure the unique username index."""
        await self._connection.open()
        try:
            await self._collection.create_index("username", unique=True, name="username_unique")
        except PyMongoError as e:
            raise StoreError(f"Failed to create user indexes: {e}", e)

    async def close(self) -> None:
        await self._connection.close()

    async def _find(self, query: dict) -> list[User]:
        try:
            docs = await self._collection.find(query).to_list(length=None)
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return [document_to_user(doc) for doc in docs]

    async def get_by_id(self, user_id: UserId) -> Optional[User]:
        try:
            doc = await self._collection.find_one({"_id": to_object_id(user_id)})
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return document_to_user(doc) if doc else None

    async def get_by_username(self, username: str) -> Optional[User]:
        try:
            doc = await self._collection.find_one({"username": username})
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return document_to_user(doc) if doc else None

    async def find_by_usernames(self, usernames: Sequence[str]) -> Sequence[User]:
        if not usernames:
            return []
        return await self._find({"username": {"$in": list(usernames)}})

    async def get_many(self, user_ids: Sequence[UserId]) -> Sequence[User]:
        """Return known users, in the order of user_ids."""
        if not user_ids:
            return []
        users = await self._find({"_id": {"$in": [to_object_id(i) for i in user_ids]}})
        by_id = {u.id: u for u in users}
        return [by_id[i] for i in user_ids if i in by_id]

    async def create(self, user: User) -> User:
        try:
            await self._collection.insert_one(user_to_document(user))
        except DuplicateKeyError:
            raise ValidationError([f"Username already exists: {user.username}"])
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return user

    async def create_many(self, users: Sequence[User]) -> Sequence[User]:
        if not users:
            return []
        try:
            await self._collection.insert_many([user_to_document(u) for u in users])
        except PyMongoError as e:
            raise StoreError(str(e), e)
        return list(users)

    async def clear(self) -> None:
        try:
            await self._collection.delete_many({})
        except PyMongoError as e:
            raise StoreError(str(e), e)
