"""
Vault document store.

Async facade over a vault directory on disk. All paths crossing this
boundary are vault-relative POSIX strings ("Projects/Plan.md"); blocking file
system calls run in a worker thread via asyncio.to_thread so the event loop
never stalls on I/O.

Only files with the managed extension are enumerated, and directories whose
name is in exclude_dirs are skipped at any depth.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List

log = logging.getLogger(__name__)

DEFAULT_EXCLUDE_DIRS = frozenset({".git", ".obsidian", "node_modules", ".trash"})


@dataclass(frozen=True)
class DocumentStat:
    ctime: float
    mtime: float
    size: int


class VaultStore:
    def __init__(
        self,
        root: Path,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
        extension: str = ".md",
    ) -> None:
        self._root = Path(root)
        self._exclude_dirs = set(exclude_dirs)
        self._extension = extension

    @property
    def root(self) -> Path:
        return self._root

    @property
    def exclude_dirs(self) -> List[str]:
        return sorted(self._exclude_dirs)

    def is_document(self, path: str) -> bool:
        """True if path has the managed extension and is not under an excluded dir."""
        parts = Path(path).parts
        if not parts or not path.endswith(self._extension):
            return False
        return not any(part in self._exclude_dirs for part in parts[:-1])

    def _resolve(self, path: str) -> Path:
        full = (self._root / path).resolve()
        root = self._root.resolve()
        if full != root and root not in full.parents:
            raise ValueError(f"Path escapes the vault: {path}")
        return full

    def _relative(self, full: Path) -> str:
        return full.relative_to(self._root).as_posix()

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    async def read(self, path: str) -> str:
        full = self._resolve(path)
        return await asyncio.to_thread(full.read_text, encoding="utf-8")

    async def write(self, path: str, text: str) -> None:
        full = self._resolve(path)

        def _write() -> None:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_text(text, encoding="utf-8")

        await asyncio.to_thread(_write)

    async def exists(self, path: str) -> bool:
        full = self._resolve(path)
        return await asyncio.to_thread(full.exists)

    async def create_folder(self, path: str) -> None:
        full = self._resolve(path)
        await asyncio.to_thread(full.mkdir, parents=True, exist_ok=True)

    async def stat(self, path: str) -> DocumentStat:
        full = self._resolve(path)
        st = await asyncio.to_thread(full.stat)
        return DocumentStat(ctime=st.st_ctime, mtime=st.st_mtime, size=st.st_size)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def _walk(self) -> Iterator[Path]:
        for full in self._root.rglob(f"*{self._extension}"):
            try:
                rel = full.relative_to(self._root)
            except ValueError:
                continue
            if any(part in self._exclude_dirs for part in rel.parts[:-1]):
                continue
            if full.is_file():
                yield full

    async def enumerate(self) -> List[str]:
        """All managed documents, sorted by path."""
        paths = await asyncio.to_thread(lambda: [self._relative(p) for p in self._walk()])
        return sorted(paths)

    async def scan(self) -> Dict[str, DocumentStat]:
        """{path: stat} for every managed document; unreadable files are skipped."""

        def _scan() -> Dict[str, DocumentStat]:
            snapshot: Dict[str, DocumentStat] = {}
            try:
                for full in self._walk():
                    try:
                        st = full.stat()
                    except OSError:
                        continue
                    snapshot[self._relative(full)] = DocumentStat(
                        ctime=st.st_ctime, mtime=st.st_mtime, size=st.st_size
                    )
            except OSError:
                log.exception("Error walking vault %s", self._root)
            return snapshot

        return await asyncio.to_thread(_scan)
