"""
Person and company notes.

Assignee tokens point at notes under the configured person/company
directories (``@John`` → ``People/John.md``). This module lists the names
available for each marker and creates missing notes.
"""

import logging
from pathlib import PurePosixPath
from typing import List, Optional

from models.settings import PluginSettings

log = logging.getLogger(__name__)

_ME_VARIANTS = ("Me", "me", "ME")


class AssigneeDirectory:
    def __init__(self, store, settings: PluginSettings) -> None:
        self._store = store
        self._settings = settings

    def _directory(self, symbol: str) -> str:
        if symbol == self._settings.person_symbol:
            return self._settings.person_directory
        return self._settings.company_directory

    async def list_names(self, symbol: str) -> List[str]:
        """Sorted note names directly under the directory for this marker."""
        directory = PurePosixPath(self._directory(symbol).strip("/"))
        names = []
        for path in await self._store.enumerate():
            p = PurePosixPath(path)
            if p.parent == directory:
                names.append(p.stem)
        return sorted(names)

    async def list_tokens(self, symbol: str) -> List[str]:
        return [f"{symbol}{name}" for name in await self.list_names(symbol)]

    async def create(self, token: str) -> Optional[str]:
        """
        Create the note an assignee token points at.

        Returns the new note's path, or None when the token has no known
        marker or the note already exists.
        """
        settings = self._settings
        is_person = token.startswith(settings.person_symbol)
        if not is_person and not token.startswith(settings.company_symbol):
            return None

        name = token[1:].strip()
        if not name:
            return None
        directory = settings.directory_for(token).strip("/")
        path = f"{directory}/{name}.md" if directory else f"{name}.md"
        if await self._store.exists(path):
            return None

        if directory and not await self._store.exists(directory):
            await self._store.create_folder(directory)

        kind = "person" if is_person else "company"
        await self._store.write(path, f"# {name}\n\nThis is a {kind} file.")
        log.info("Created %s note %s", kind, path)
        return path

    async def me_exists(self) -> bool:
        directory = self._settings.person_directory.strip("/")
        for variant in _ME_VARIANTS:
            path = f"{directory}/{variant}.md" if directory else f"{variant}.md"
            if await self._store.exists(path):
                return True
        return False

    async def create_me(self) -> Optional[str]:
        """Create the personal "Me" note unless any case variant already exists."""
        if await self.me_exists():
            return None
        directory = self._settings.person_directory.strip("/")
        path = f"{directory}/Me.md" if directory else "Me.md"
        if directory and not await self._store.exists(directory):
            await self._store.create_folder(directory)
        await self._store.write(path, "# Me\n\nThis is your personal file.")
        log.info("Created personal note %s", path)
        return path
