"""
Shareable item registry.

Feature modules ("sparks") register here to declare what they can share and
how a share is carried out. The registry is the only sharing surface a spark
talks to: it hands out a ``SparkContext`` for each call and forwards copy
shares to the share mailbox.

Invariants:
    - One registration per spark_id; registering again replaces the previous
      entry (last writer wins). Sparks re-register whenever their shareable
      set changes, so the registry always holds the latest snapshot.
    - No unregistration and no versioning.
    - Sparks that never registered are treated as auto-accept, which is how
      every spark behaved before the policy became configurable.

Example:
    >>> registry = ShareableItemRegistry()
    >>> registry.register_spark(short_saver)
    >>> registry.accept_policy_for("some-unregistered-spark")
    <AcceptPolicy.auto_accept: 'auto_accept'>
"""

from __future__ import annotations

import enum
import importlib
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.core.security import CurrentUser
from sparkshare.models.shared_item import SharedItem
from sparkshare.services import shared_items as mailbox

logger = logging.getLogger(__name__)


class SharingModel(str, enum.Enum):
    copy = "copy"
    reference = "reference"


class AcceptPolicy(str, enum.Enum):
    auto_accept = "auto_accept"
    require_confirmation = "require_confirmation"


@dataclass
class ShareableItem:
    id: str
    title: str
    spark_id: str
    data: dict[str, Any] = field(default_factory=dict)
    description: str | None = None
    preview: str | None = None


@dataclass
class SparkContext:
    """Per-call handle given to a spark: who is acting, on which session."""

    db: AsyncSession
    user: CurrentUser
    registry: ShareableItemRegistry
    spark_id: str

    async def share_item_copy(self, item_id: str, friend_id: str, data: Mapping[str, Any]) -> SharedItem:
        return await self.registry.share_item_copy(
            self.db,
            self.user,
            spark_id=self.spark_id,
            item_id=item_id,
            friend_id=friend_id,
            data=data,
        )


@runtime_checkable
class ShareableSpark(Protocol):
    spark_id: str
    sharing_model: SharingModel
    accept_policy: AcceptPolicy

    async def get_shareable_items(self, ctx: SparkContext) -> list[ShareableItem]:
        ...

    async def on_share_item(self, ctx: SparkContext, item_id: str, friend_id: str) -> None:
        ...


class ShareableItemRegistry:
    """Keyed map of spark registrations, created once per process."""

    def __init__(self) -> None:
        self._sparks: dict[str, ShareableSpark] = {}
        self._lock = threading.Lock()

    def register_spark(self, spark: ShareableSpark) -> ShareableSpark | None:
        """Insert or replace the registration for ``spark.spark_id``.

        Returns the registration that was replaced, if any.
        """
        if not isinstance(spark, ShareableSpark):
            raise TypeError(f"{type(spark).__name__} does not implement ShareableSpark")

        spark_id = (spark.spark_id or "").strip()
        if not spark_id:
            raise ValueError("spark_id must be a non-empty string")

        with self._lock:
            previous = self._sparks.get(spark_id)
            self._sparks[spark_id] = spark

        if previous is None:
            logger.info("Registered shareable spark %s (%s)", spark_id, SharingModel(spark.sharing_model).value)
        elif previous is not spark:
            logger.debug("Replaced shareable spark registration %s", spark_id)
        return previous

    def get_spark(self, spark_id: str) -> ShareableSpark | None:
        return self._sparks.get(spark_id)

    def require_spark(self, spark_id: str) -> ShareableSpark:
        spark = self.get_spark(spark_id)
        if spark is None:
            raise ValueError("unknown_spark")
        return spark

    def sparks(self) -> list[ShareableSpark]:
        with self._lock:
            return [self._sparks[k] for k in sorted(self._sparks)]

    def accept_policy_for(self, spark_id: str) -> AcceptPolicy:
        spark = self.get_spark(spark_id)
        if spark is None:
            return AcceptPolicy.auto_accept
        return AcceptPolicy(spark.accept_policy)

    def context(self, db: AsyncSession, user: CurrentUser, spark_id: str) -> SparkContext:
        return SparkContext(db=db, user=user, registry=self, spark_id=spark_id)

    async def share_item_copy(
        self,
        db: AsyncSession,
        user: CurrentUser,
        *,
        spark_id: str,
        item_id: str,
        friend_id: str,
        data: Mapping[str, Any],
    ) -> SharedItem:
        return await mailbox.share_item_copy(
            db,
            user,
            spark_id=spark_id,
            item_id=item_id,
            friend_id=friend_id,
            data=data,
        )

    async def list_shareable_items(self, db: AsyncSession, user: CurrentUser, spark_id: str) -> list[ShareableItem]:
        spark = self.require_spark(spark_id)
        return await spark.get_shareable_items(self.context(db, user, spark_id))

    async def share_item(
        self,
        db: AsyncSession,
        user: CurrentUser,
        *,
        spark_id: str,
        item_id: str,
        friend_id: str,
    ) -> None:
        spark = self.require_spark(spark_id)
        await spark.on_share_item(self.context(db, user, spark_id), item_id, friend_id)


def load_spark_modules(registry: ShareableItemRegistry, module_paths: list[str]) -> None:
    """Import each module and call its ``register(registry)`` hook."""
    for path in module_paths:
        module = importlib.import_module(path)
        register = getattr(module, "register", None)
        if not callable(register):
            raise RuntimeError(f"Spark module {path} has no register(registry) function")
        register(registry)
        logger.info("Loaded spark module %s", path)
