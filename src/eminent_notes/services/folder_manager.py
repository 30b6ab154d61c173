"""Folder tree management: creation, renaming, deletion and navigation."""

import logging
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel

from eminent_notes.config import config
from eminent_notes.exceptions import (
    ConfigurationError,
    DepthLimitError,
    ErrorCode,
    RecordNotFoundError,
    StorageError,
    ValidationError,
)
from eminent_notes.models.db_models import DBFolder, DBNote
from eminent_notes.models.schema import Folder
from eminent_notes.observability import traced
from eminent_notes.observable import Observable
from eminent_notes.storage import FOLDER_ORDER, EntityKind, Store

logger = logging.getLogger(__name__)


class ChildFolderPolicy(str, Enum):
    """What happens to the child folders of a deleted folder."""

    # Children move up to the deleted folder's parent
    REPARENT = "reparent"
    # The whole subtree is deleted; its notes move to the deleted folder's parent
    CASCADE = "cascade"

    @classmethod
    def parse(cls, value: Union[str, "ChildFolderPolicy"]) -> "ChildFolderPolicy":
        try:
            return cls(str(value.value if isinstance(value, cls) else value).lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown child folder policy '{value}'",
                config_key="child_folder_policy",
            ) from e


class FolderState(BaseModel):
    """Snapshot of the folder tree as seen by the navigation UI."""

    root_folders: Tuple[Folder, ...] = ()
    current_folder: Optional[Folder] = None
    path: Tuple[Folder, ...] = ()

    model_config = {"frozen": True}


def _clean_name(name: Optional[str]) -> str:
    if not name or not name.strip():
        raise ValidationError(
            "Folder name cannot be empty",
            field="name",
            value=name,
            code=ErrorCode.FOLDER_NAME_REQUIRED,
        )
    return name.strip()


class FolderManager(Observable[FolderState]):
    """Maintains the folder tree and the current navigation position.

    Root folders have depth 0. A folder may only be created under a parent
    whose depth is below ``max_depth - 1``, so no folder is ever deeper than
    ``max_depth - 1``. Deleting a folder never deletes notes: they move to
    the deleted folder's parent (or to no folder).
    """

    def __init__(
        self,
        store: Store,
        max_depth: Optional[int] = None,
        child_policy: Optional[Union[str, ChildFolderPolicy]] = None,
    ):
        super().__init__()
        self.store = store
        self.max_depth = max_depth if max_depth is not None else config.max_folder_depth
        if self.max_depth < 1:
            raise ConfigurationError(
                "max_depth must be >= 1", config_key="max_folder_depth"
            )
        self.child_policy = ChildFolderPolicy.parse(
            child_policy or config.child_folder_policy
        )
        self._root_folders: Tuple[Folder, ...] = ()
        self._current: Optional[Folder] = None
        self._path: Tuple[Folder, ...] = ()

    def snapshot(self) -> FolderState:
        return FolderState(
            root_folders=self._root_folders,
            current_folder=self._current,
            path=self._path,
        )

    @property
    def current_folder(self) -> Optional[Folder]:
        return self._current

    @property
    def root_folders(self) -> List[Folder]:
        return list(self._root_folders)

    # =========================================================================
    # Queries
    # =========================================================================

    def list_roots(self) -> List[Folder]:
        """Fetch the parentless folders, name ascending, and publish them.

        On storage failure the previously published list is returned.
        """
        try:
            roots = self.store.fetch(
                EntityKind.FOLDER, DBFolder.parent_id.is_(None), order_by=FOLDER_ORDER
            )
        except StorageError as e:
            logger.error(f"Failed to fetch root folders: {e}")
            return list(self._root_folders)
        self._root_folders = tuple(roots)
        self._publish()
        return roots

    def all_folders(self) -> List[Folder]:
        try:
            return self.store.fetch(EntityKind.FOLDER, order_by=FOLDER_ORDER)
        except StorageError as e:
            logger.error(f"Failed to fetch folders: {e}")
            return []

    def get(self, folder_id: str) -> Optional[Folder]:
        return self.store.get(EntityKind.FOLDER, folder_id)

    def children_of(self, folder: Optional[Folder]) -> List[Folder]:
        """Direct children of ``folder`` by name; the root list for None."""
        if folder is None:
            return self.list_roots()
        try:
            return self.store.fetch(
                EntityKind.FOLDER, DBFolder.parent_id == folder.id, order_by=FOLDER_ORDER
            )
        except StorageError as e:
            logger.error(f"Failed to fetch children of folder {folder.id}: {e}")
            return []

    def has_contents(self, folder: Folder) -> bool:
        """Whether the folder holds any child folders or notes."""
        with self.store.transact():
            children = self.store.count(EntityKind.FOLDER, DBFolder.parent_id == folder.id)
            notes = self.store.count(EntityKind.NOTE, DBNote.folder_id == folder.id)
        return children + notes > 0

    def depth(self, folder: Folder) -> int:
        """Number of ancestors of ``folder`` (0 for a root).

        Raises:
            StorageError: If the parent chain is broken or longer than the
                depth limit allows (FOLDER_TREE_CORRUPT).
        """
        return len(self._ancestors(folder))

    def _stored(self, folder: Folder, operation: str) -> Folder:
        """Current stored version of ``folder``.

        Callers may hold a copy whose parent changed since it was read,
        e.g. a child reparented by an earlier delete.

        Raises:
            RecordNotFoundError: If the folder no longer exists.
        """
        stored = self.store.get(EntityKind.FOLDER, folder.id)
        if stored is None:
            raise RecordNotFoundError(EntityKind.FOLDER.value, folder.id, operation=operation)
        return stored

    def _ancestors(self, folder: Folder) -> List[Folder]:
        """Ancestors of ``folder`` from its stored parent up to the root."""
        ancestors: List[Folder] = []
        with self.store.transact():
            parent_id = self._stored(folder, "depth").parent_id
            while parent_id is not None:
                if len(ancestors) > self.max_depth:
                    raise StorageError(
                        f"Parent chain of folder '{folder.id}' exceeds "
                        f"{self.max_depth + 1} levels",
                        operation="depth",
                        kind=EntityKind.FOLDER.value,
                        code=ErrorCode.FOLDER_TREE_CORRUPT,
                    )
                parent = self.store.get(EntityKind.FOLDER, parent_id)
                if parent is None:
                    raise StorageError(
                        f"Folder '{folder.id}' references missing parent '{parent_id}'",
                        operation="depth",
                        kind=EntityKind.FOLDER.value,
                        code=ErrorCode.FOLDER_TREE_CORRUPT,
                    )
                ancestors.append(parent)
                parent_id = parent.parent_id
        return ancestors

    def _descendant_levels(self, folder_id: str) -> List[List[str]]:
        """IDs of every folder below ``folder_id``, grouped by level."""
        levels: List[List[str]] = []
        seen = {folder_id}
        frontier = [folder_id]
        while frontier:
            children = self.store.fetch(
                EntityKind.FOLDER, DBFolder.parent_id.in_(frontier)
            )
            frontier = [f.id for f in children if f.id not in seen]
            seen.update(frontier)
            if frontier:
                levels.append(frontier)
        return levels

    # =========================================================================
    # Commands
    # =========================================================================

    @traced("create_folder")
    def create_folder(self, name: str, parent: Optional[Folder] = None) -> Optional[Folder]:
        """Create a folder at the root or under ``parent``.

        Raises:
            ValidationError: If the name is blank.
            DepthLimitError: If ``parent`` is already at the deepest level
                that may hold children.

        Returns:
            The new folder, or None if the store failed.
        """
        clean = _clean_name(name)
        try:
            with self.store.transact():
                if parent is not None:
                    parent_depth = self.depth(parent)
                    if parent_depth >= self.max_depth - 1:
                        raise DepthLimitError(parent.id, parent_depth, self.max_depth)
                folder_id = self.store.create(
                    EntityKind.FOLDER,
                    name=clean,
                    parent_id=parent.id if parent else None,
                )
                folder = self.store.get(EntityKind.FOLDER, folder_id)
        except StorageError as e:
            logger.error(f"Failed to create folder '{clean}': {e}")
            return None

        logger.info(f"Created folder '{clean}' ({folder.id})")
        self.list_roots()
        return folder

    @traced("rename_folder")
    def rename_folder(self, folder: Folder, new_name: str) -> Optional[Folder]:
        """Rename a folder and refresh the root list and breadcrumb.

        Raises:
            ValidationError: If the new name is blank.

        Returns:
            The renamed folder, or None if the store failed.
        """
        clean = _clean_name(new_name)
        try:
            with self.store.transact():
                self.store.update(EntityKind.FOLDER, folder.id, name=clean)
                renamed = self.store.get(EntityKind.FOLDER, folder.id)
        except StorageError as e:
            logger.error(f"Failed to rename folder {folder.id}: {e}")
            return None

        if self._current is not None:
            current = renamed if self._current.id == renamed.id else self._current
            self._set_current(current, publish=False)
        self.list_roots()
        return renamed

    @traced("delete_folder")
    def delete_folder(self, folder: Folder) -> bool:
        """Delete a folder, keeping every note it held.

        Notes in the folder move to its parent (or to no folder). Child
        folders follow ``child_policy``. If the current folder no longer
        exists afterwards, navigation moves to the deleted folder's parent.

        Returns:
            True on success, False (nothing changed) if the store failed.
        """
        new_home: Optional[str] = None
        try:
            with self.store.transact():
                new_home = self._stored(folder, "delete").parent_id
                moved = self.store.update_where(
                    EntityKind.NOTE, DBNote.folder_id == folder.id, folder_id=new_home
                )
                if self.child_policy is ChildFolderPolicy.REPARENT:
                    self.store.update_where(
                        EntityKind.FOLDER,
                        DBFolder.parent_id == folder.id,
                        parent_id=new_home,
                    )
                else:
                    levels = self._descendant_levels(folder.id)
                    descendant_ids = [fid for level in levels for fid in level]
                    if descendant_ids:
                        moved += self.store.update_where(
                            EntityKind.NOTE,
                            DBNote.folder_id.in_(descendant_ids),
                            folder_id=new_home,
                        )
                    # Deepest first so no folder outlives its parent
                    for level in reversed(levels):
                        for fid in level:
                            self.store.delete(EntityKind.FOLDER, fid)
                self.store.delete(EntityKind.FOLDER, folder.id)
        except StorageError as e:
            logger.error(f"Failed to delete folder {folder.id}: {e}")
            return False

        logger.info(
            f"Deleted folder '{folder.name}' ({folder.id}); "
            f"{moved} note(s) moved to {new_home or 'root level'}"
        )

        if self._current is not None:
            current = self.store.get(EntityKind.FOLDER, self._current.id)
            if current is None:
                parent = self.store.get(EntityKind.FOLDER, new_home) if new_home else None
                self._set_current(parent, publish=False)
            else:
                self._set_current(current, publish=False)
        self.list_roots()
        return True

    # =========================================================================
    # Navigation
    # =========================================================================

    def navigate_to(self, folder: Optional[Folder]) -> None:
        """Make ``folder`` current (None for root level) and publish the path."""
        self._set_current(folder)

    def navigate_up(self) -> Optional[Folder]:
        """Move to the parent of the current folder and return it."""
        if self._current is None:
            return None
        parent = None
        if self._current.parent_id is not None:
            parent = self.store.get(EntityKind.FOLDER, self._current.parent_id)
        self._set_current(parent)
        return parent

    def path(self) -> List[Folder]:
        """Breadcrumb from the root down to the current folder."""
        return list(self._path)

    def _set_current(self, folder: Optional[Folder], publish: bool = True) -> None:
        if folder is None:
            self._path = ()
        else:
            try:
                with self.store.transact():
                    folder = self._stored(folder, "navigate")
                    ancestors = self._ancestors(folder)
            except StorageError as e:
                logger.error(f"Failed to compute path for folder {folder.id}: {e}")
                ancestors = []
            self._path = tuple(reversed(ancestors)) + (folder,)
        self._current = folder
        if publish:
            self._publish()
