"""Dependency injection container."""

from dataclasses import dataclass
from typing import TypeVar, Generic, Callable, Optional, Any

from todo_api.domain.protocols import TaskStore, UserDirectory


T = TypeVar("T")


class Provider(Generic[T]):
    """Lazy provider that creates instance on first access."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._instance: Optional[T] = None

    @property
    def created(self) -> bool:
        return self._instance is not None

    def get(self) -> T:
        """Get the instance, creating it if necessary."""
        if self._instance is None:
            self._instance = self._factory()
        return self._instance

    def reset(self) -> None:
        """Reset the instance (for testing)."""
        self._instance = None

    def override(self, instance: T) -> None:
        """Override with a specific instance (for testing)."""
        self._instance = instance


@dataclass
class Container:
    """Dependency injection container."""

    _task_store: Optional[Provider[TaskStore]] = None
    _user_directory: Optional[Provider[UserDirectory]] = None

    # Settings cache
    _settings: Optional[Any] = None

    @property
    def configured(self) -> bool:
        return self._task_store is not None and self._user_directory is not None

    @property
    def task_store(self) -> TaskStore:
        """Get the task store."""
        if self._task_store is None:
            raise RuntimeError("Task store not configured")
        return self._task_store.get()

    @property
    def user_directory(self) -> UserDirectory:
        """Get the user directory."""
        if self._user_directory is None:
            raise RuntimeError("User directory not configured")
        return self._user_directory.get()

    @property
    def todo_service(self) -> Any:
        """Get TodoService instance."""
        from todo_api.services.todo_service import TodoService, OwnershipPolicy

        policy = self.settings.policy
        return TodoService(
            task_store=self.task_store,
            user_directory=self.user_directory,
            policy=OwnershipPolicy(
                note_requires_owner=policy.note_requires_owner,
                delete_requires_owner=policy.delete_requires_owner,
            ),
        )

    @property
    def stats_service(self) -> Any:
        """Get StatsService instance."""
        from todo_api.services.stats_service import StatsService

        return StatsService(task_store=self.task_store)

    @property
    def settings(self) -> Any:
        """Get application settings."""
        if self._settings is None:
            from todo_api.config.settings import get_settings

            self._settings = get_settings()
        return self._settings

    def configure_task_store(self, factory: Callable[[], TaskStore]) -> "Container":
        """Configure the task store."""
        self._task_store = Provider(factory)
        return self

    def configure_user_directory(
        self, factory: Callable[[], UserDirectory]
    ) -> "Container":
        """Configure the user directory."""
        self._user_directory = Provider(factory)
        return self

    async def open(self) -> None:
        """Open the configured stores."""
        await self.task_store.open()
        await self.user_directory.open()

    async def close(self) -> None:
        """Close stores that have been created."""
        if self._task_store and self._task_store.created:
            await self._task_store.get().close()
        if self._user_directory and self._user_directory.created:
            await self._user_directory.get().close()

    def reset(self) -> None:
        """Reset all providers (for testing)."""
        if self._task_store:
            self._task_store.reset()
        if self._user_directory:
            self._user_directory.reset()
        self._settings = None


# Global container instance
container = Container()


def get_container() -> Container:
    """Get the global container instance."""
    return container


def reset_container() -> None:
    """Reset the global container (for testing)."""
    global container
    container.reset()
    container = Container()


def setup_container() -> Container:
    """Configure stores from settings unless already configured.

    MongoDB is used when MONGO_URI is set, in-memory stores otherwise.
    """
    from todo_api.repositories.memory import InMemoryTaskStore, InMemoryUserDirectory

    container = get_container()
    if container.configured:
        return container

    mongo = container.settings.mongo

    if mongo.enabled:
        from todo_api.repositories.mongo import (
            MongoConnection,
            MongoTaskStore,
            MongoUserDirectory,
        )

        connection = Provider(
            lambda: MongoConnection(
                mongo.uri.get_secret_value(),
                mongo.database,
                timeout_ms=mongo.timeout_ms,
            )
        )
        container.configure_task_store(
            lambda: MongoTaskStore(connection.get(), mongo.todos_collection)
        )
        container.configure_user_directory(
            lambda: MongoUserDirectory(connection.get(), mongo.users_collection)
        )
    else:
        container.configure_task_store(InMemoryTaskStore)
        container.configure_user_directory(InMemoryUserDirectory)

    return container
