import enum
import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from errors import AlreadyExists, NotFound, UnsupportedDocumentType

log = logging.getLogger(__name__)

_COPY_MARKER = "_copy"
_COPY_SUFFIX_RE = re.compile(r"_copy(\d+)$")


class DocumentKind(enum.Enum):
    PLAIN_TEXT = ".txt"
    MARKDOWN = ".md"

    @classmethod
    def extensions(cls) -> list[str]:
        return [kind.value for kind in cls]


def kind_for(name: str) -> DocumentKind:
    try:
        return DocumentKind(os.path.splitext(name)[1])
    except ValueError:
        raise UnsupportedDocumentType(f"no renderer for {name!r}") from None


def is_flat_name(name: str) -> bool:
    if not name or name in (".", ".."):
        return False
    return not any(ch in name for ch in ("/", "\\", "\x00"))


def _split_copy(name: str) -> tuple[str, int, str]:
    # legacy names carry the suffix after the extension: about.md_copy4
    m = _COPY_SUFFIX_RE.search(name)
    if m:
        stem, ext = os.path.splitext(name[:m.start()])
        return stem, int(m.group(1)), ext
    stem, ext = os.path.splitext(name)
    m = _COPY_SUFFIX_RE.search(stem)
    if m:
        return stem[:m.start()], int(m.group(1)), ext
    return stem, 0, ext


def base_name(name: str) -> str:
    return _split_copy(name)[0]


def copy_number(name: str) -> int:
    return _split_copy(name)[1]


def next_copy_name(name: str, existing) -> str:
    """Name for a fresh duplicate of ``name`` given every name in the namespace.

    Copies of copies share the original's base name, so the whole namespace is
    scanned for the highest copy number already taken under that base.
    """
    existing = set(existing)
    base, _, ext = _split_copy(name)
    taken = [copy_number(other) for other in existing if base_name(other) == base]
    number = max(taken, default=0) + 1
    candidate = f"{base}{_COPY_MARKER}{number}{ext}"
    while candidate in existing:
        number += 1
        candidate = f"{base}{_COPY_MARKER}{number}{ext}"
    return candidate


@dataclass(frozen=True)
class Document:
    name: str
    path: Path

    @property
    def kind(self) -> DocumentKind:
        return kind_for(self.name)


class DocumentRepository:

    def __init__(self, root: Path):
        self.root = Path(root)

    def _safe_path(self, name: str) -> Path | None:
        if not is_flat_name(name):
            return None
        root = self.root.resolve()
        try:
            candidate = (root / name).resolve()
            candidate.relative_to(root)
        except (ValueError, OSError):
            return None
        if candidate.parent != root:
            return None
        return candidate

    def list(self) -> list[str]:
        try:
            entries = os.scandir(self.root)
        except FileNotFoundError:
            return []
        with entries:
            names = [e.name for e in entries if e.is_file(follow_symlinks=False)]
        return sorted(names)

    def exists(self, name: str) -> bool:
        path = self._safe_path(name)
        return path is not None and path.is_file()

    def resolve(self, name: str) -> Document:
        path = self._safe_path(name)
        if path is None or not path.is_file():
            raise NotFound(name)
        return Document(name=name, path=path)

    def create(self, name: str, content: bytes | str = b"") -> Document:
        path = self._safe_path(name)
        if path is None:
            raise NotFound(name)
        try:
            with open(path, "xb") as f:
                f.write(_as_bytes(content))
        except FileExistsError:
            raise AlreadyExists(name) from None
        log.info("created %s", name)
        return Document(name=name, path=path)

    def read(self, name: str) -> bytes:
        return self.resolve(name).path.read_bytes()

    def write(self, name: str, content: bytes | str) -> None:
        path = self._safe_path(name)
        if path is None:
            raise NotFound(name)
        path.write_bytes(_as_bytes(content))
        log.info("wrote %s", name)

    def delete(self, name: str) -> None:
        path = self._safe_path(name)
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            return
        log.info("deleted %s", name)

    def duplicate(self, name: str) -> str:
        source = self.resolve(name)
        new_name = next_copy_name(name, self.list())
        target = self._safe_path(new_name)
        if target is None:
            raise NotFound(new_name)
        shutil.copyfile(source.path, target)
        log.info("duplicated %s as %s", name, new_name)
        return new_name


def _as_bytes(content: bytes | str) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return content
